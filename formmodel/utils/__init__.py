"""formmodel 工具模块."""

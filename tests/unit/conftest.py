# tests/unit/conftest.py
"""单元测试专用 fixtures."""

import pytest

from formmodel.settings import get_settings


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """清空 Settings 缓存,避免开发者本机环境变量影响测试."""
    for key in (
        "FORMMODEL_LOG_JSON",
        "FORMMODEL_UNKNOWN_PARAMS_OK",
        "FORMMODEL_UNIQUE_MESSAGE",
        "FORMMODEL_UNIQUE_CONSTRAINT_MESSAGE",
        "FORMMODEL_REQUIRED_MESSAGE",
        "FORMMODEL_LABEL_COLUMN",
        "FORMMODEL_ACTIVE_COLUMN",
    ):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

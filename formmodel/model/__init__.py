"""表单与数据库记录的绑定."""

from .binding import ModelBindingMixin

__all__ = ["ModelBindingMixin"]

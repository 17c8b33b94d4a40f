"""表单包

集中管理字段模型、表单基类以及绑定数据库记录的表单.
"""

from .base import BaseForm
from .fields import FieldComponent, FieldOption, FormField

__all__ = [
    "BaseForm",
    "FieldComponent",
    "FieldOption",
    "FormField",
]

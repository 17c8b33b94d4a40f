"""formmodel - 表单与 SQLAlchemy 记录的绑定层.

为表单提供按主键定位记录、关联选项加载、唯一性校验与事务内嵌套写入能力.
"""

from formmodel.errors import ConfigurationError, FormModelError, RecordUpdateError, SourceResolutionError
from formmodel.forms import BaseForm, FieldComponent, FieldOption, FormField
from formmodel.forms.model_form import ModelForm
from formmodel.model import ModelBindingMixin
from formmodel.orm import CompositeKey, RelationshipKind, Schema, recursive_update
from formmodel.settings import APP_VERSION

__version__ = APP_VERSION

__all__ = [
    "BaseForm",
    "CompositeKey",
    "ConfigurationError",
    "FieldComponent",
    "FieldOption",
    "FormField",
    "FormModelError",
    "ModelBindingMixin",
    "ModelForm",
    "RecordUpdateError",
    "RelationshipKind",
    "Schema",
    "SourceResolutionError",
    "recursive_update",
]

"""绑定数据库记录的表单基类."""

from formmodel.forms.base import BaseForm
from formmodel.model.binding import ModelBindingMixin


class ModelForm(ModelBindingMixin, BaseForm):
    """组合了记录绑定能力的表单.

    Example:
        >>> class BookForm(ModelForm):
        ...     item_class = "Book"
        ...     field_list = (FormField(name="title", required=True),)
        >>> form = BookForm(schema=Schema.from_flask(db))
        >>> form.process({"title": "Dune"})

    """


__all__ = ["ModelForm"]

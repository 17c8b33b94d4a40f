import pytest

from fixtures.library_models import Book
from formmodel.forms.fields import FormField
from formmodel.forms.model_form import ModelForm
from formmodel.settings import get_settings

CONSTRAINT_ERROR = "违反唯一约束 uq_books_title_author: 已存在相同的记录"


def _book_form(schema, *fields: FormField, **kwargs) -> ModelForm:
    return ModelForm(schema=schema, item_class="Book", fields=list(fields), **kwargs)


@pytest.mark.unit
def test_duplicate_value_on_new_record_reports_single_error(schema, session, library) -> None:
    form = _book_form(schema, FormField(name="title"), FormField(name="isbn", label="ISBN", unique=True))

    assert form.process({"title": "Third", "isbn": "111"}) is False

    assert form.errors == {"isbn": ["ISBN 的值已存在"]}
    assert session.query(Book).count() == 2


@pytest.mark.unit
def test_unique_field_passes_for_new_value(schema, library) -> None:
    form = _book_form(schema, FormField(name="title"), FormField(name="isbn", unique=True))

    assert form.process({"title": "Third", "isbn": "333"}) is True
    assert form.item.isbn == "333"


@pytest.mark.unit
def test_editing_own_value_is_not_a_duplicate(schema, library) -> None:
    form = ModelForm(schema=schema, fields=[FormField(name="email", unique=True)])

    assert form.process({"email": "ann@example.com"}, item=library.ann) is True
    assert not form.has_errors


@pytest.mark.unit
def test_editing_to_another_rows_value_is_a_duplicate(schema, library) -> None:
    form = ModelForm(schema=schema, fields=[FormField(name="email", label="邮箱", unique=True)])

    assert form.process({"email": "bob@example.com"}, item=library.ann) is False
    assert form.field("email").errors == ["邮箱 的值已存在"]


@pytest.mark.unit
def test_empty_values_are_not_checked(schema, library) -> None:
    form = _book_form(schema, FormField(name="title"), FormField(name="isbn", unique=True))
    form.setup_form({"title": "Third", "isbn": ""})

    assert form.validate_unique() is True


@pytest.mark.unit
def test_field_message_overrides_default(schema, library) -> None:
    isbn = FormField(name="isbn", label="ISBN", unique=True, messages={"unique": "{0} 已被占用"})
    form = _book_form(schema, FormField(name="title"), isbn)

    form.process({"title": "Third", "isbn": "111"})

    assert form.field("isbn").errors == ["ISBN 已被占用"]


@pytest.mark.unit
def test_unique_message_attribute_overrides_settings(schema, library) -> None:
    isbn = FormField(name="isbn", label="ISBN", unique=True, unique_message="{0} 重复")
    form = _book_form(schema, FormField(name="title"), isbn)

    form.process({"title": "Third", "isbn": "111"})

    assert form.field("isbn").errors == ["ISBN 重复"]


@pytest.mark.unit
def test_settings_message_is_used_when_nothing_else_is_configured(monkeypatch, schema, library) -> None:
    monkeypatch.setenv("FORMMODEL_UNIQUE_MESSAGE", "重复的 {0}")
    get_settings.cache_clear()
    form = _book_form(schema, FormField(name="title"), FormField(name="isbn", label="ISBN", unique=True))

    form.process({"title": "Third", "isbn": "111"})

    assert form.field("isbn").errors == ["重复的 ISBN"]


@pytest.mark.unit
def test_constraint_violation_is_reported_on_first_bound_column(schema, library) -> None:
    form = _book_form(schema, FormField(name="title"), FormField(name="author_id"))

    assert form.process({"title": "First", "author_id": library.ann.id}) is False

    assert form.errors == {"title": [CONSTRAINT_ERROR]}


@pytest.mark.unit
def test_constraint_passes_for_different_combination(schema, library) -> None:
    form = _book_form(schema, FormField(name="title"), FormField(name="author_id"))

    assert form.process({"title": "First", "author_id": library.bob.id}) is True


@pytest.mark.unit
def test_constraint_uses_bound_item_for_unsubmitted_columns(schema, library) -> None:
    form = ModelForm(schema=schema, fields=[FormField(name="title")])

    assert form.process({"title": "First"}, item=library.second) is True
    assert library.second.title == "First"

    clash = ModelForm(schema=schema, fields=[FormField(name="title"), FormField(name="author_id")])
    assert clash.process({"title": "First", "author_id": library.ann.id}, item=library.second) is False
    assert clash.errors == {"title": [CONSTRAINT_ERROR]}


@pytest.mark.unit
def test_constraint_excludes_the_record_being_edited(schema, library) -> None:
    form = ModelForm(schema=schema, fields=[FormField(name="title"), FormField(name="author_id")])

    assert form.process({"title": "First", "author_id": library.ann.id}, item=library.first) is True


@pytest.mark.unit
def test_constraint_message_override(schema, library) -> None:
    form = _book_form(
        schema,
        FormField(name="title"),
        FormField(name="author_id"),
        unique_messages={"uq_books_title_author": "该作者已有同名图书({0})"},
    )

    form.process({"title": "First", "author_id": library.ann.id})

    assert form.field("title").errors == ["该作者已有同名图书(uq_books_title_author)"]


@pytest.mark.unit
def test_field_with_explicit_unique_flag_skips_constraint_pass(schema, library) -> None:
    form = _book_form(schema, FormField(name="title", unique=False), FormField(name="author_id"))
    form.setup_form({"title": "First", "author_id": library.ann.id})

    assert form.validate_unique() is True
    assert not form.has_errors


@pytest.mark.unit
def test_inactive_fields_are_ignored(schema, library) -> None:
    form = _book_form(schema, FormField(name="title"), FormField(name="isbn", unique=True, inactive=True))
    form.setup_form({"title": "Third", "isbn": "111"})

    assert form.validate_unique() is True


@pytest.mark.unit
def test_composite_key_record_is_excluded_from_its_own_check(schema, library) -> None:
    form = ModelForm(schema=schema, fields=[FormField(name="label", unique=True)])
    edition = schema.resultset("Edition").find((library.first.id, 1))

    form.item = edition
    form.setup_form({"label": "Hardcover"})
    assert form.validate_unique() is True

    form.clear_state()
    form.setup_form({"label": "Paperback"})
    assert form.validate_unique() is False

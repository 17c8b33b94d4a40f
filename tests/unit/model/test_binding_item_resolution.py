import pytest

from fixtures.library_models import Book, Edition, Publisher
from formmodel.errors import ConfigurationError, SourceResolutionError
from formmodel.forms.model_form import ModelForm
from formmodel.orm.keys import CompositeKey


@pytest.mark.unit
def test_item_id_loads_item_lazily(schema, library) -> None:
    form = ModelForm(schema=schema, item_class="Book", item_id=library.first.id)

    assert form._item is None
    assert form.item is library.first
    assert form.item_id == library.first.id


@pytest.mark.unit
def test_setting_item_records_identifier_and_class(schema, library) -> None:
    form = ModelForm(schema=schema)
    form.item = library.second

    assert form.item_id == library.second.id
    assert form.item_class is Book
    assert form.source().model is Book


@pytest.mark.unit
def test_composite_item_round_trip(schema, library) -> None:
    form = ModelForm(schema=schema, item_class=Edition)
    form.item_id = (library.first.id, 2)

    edition = form.item
    assert edition.label == "Paperback"

    other = ModelForm(schema=schema)
    other.item = edition
    assert other.item_id == CompositeKey(values={"book_id": library.first.id, "number": 2})


@pytest.mark.unit
def test_scalar_identifier_on_composite_key_is_rejected(schema, library) -> None:
    form = ModelForm(schema=schema, item_class=Edition, item_id=library.first.id)

    with pytest.raises(ConfigurationError):
        _ = form.item


@pytest.mark.unit
def test_missing_record_clears_binding(schema, library) -> None:
    form = ModelForm(schema=schema, item_class=Book, item_id=9999)

    assert form.item is None
    assert form.item_id is None


@pytest.mark.unit
def test_new_identifier_drops_stale_item(schema, library) -> None:
    form = ModelForm(schema=schema, item=library.first)

    form.item_id = library.second.id

    assert form.item is library.second


@pytest.mark.unit
def test_equivalent_identifier_keeps_bound_item(schema, library) -> None:
    form = ModelForm(schema=schema, item=library.first)

    form.item_id = str(library.first.id)

    assert form._item is library.first


@pytest.mark.unit
def test_clearing_item_clears_identifier(schema, library) -> None:
    form = ModelForm(schema=schema, item=library.first)

    form.item = None

    assert form.item_id is None
    assert form.item is None


@pytest.mark.unit
def test_clear_model_resets_both_slots(schema, library) -> None:
    form = ModelForm(schema=schema, item=library.first)

    form.clear_model()

    assert form.item is None
    assert form.item_id is None


@pytest.mark.unit
def test_build_item_without_schema_raises(library) -> None:
    form = ModelForm(item_class=Book, item_id=library.first.id)

    with pytest.raises(ConfigurationError) as exc_info:
        _ = form.item

    assert exc_info.value.message_key == "SCHEMA_REQUIRED"


@pytest.mark.unit
def test_setting_persistent_item_derives_schema(library) -> None:
    form = ModelForm()
    form.item = library.alpha

    assert form.schema is not None
    assert form.source("Publisher").model is Publisher


@pytest.mark.unit
def test_setting_transient_item_without_schema_raises() -> None:
    form = ModelForm()

    with pytest.raises(ConfigurationError):
        form.item = Publisher(name="Draft")


@pytest.mark.unit
def test_source_requires_record_type(schema) -> None:
    with pytest.raises(ConfigurationError):
        ModelForm(schema=schema).source()


@pytest.mark.unit
def test_source_name_overrides_item_class(schema) -> None:
    form = ModelForm(schema=schema, item_class="Author", source_name="books")

    assert form.source().model is Book


@pytest.mark.unit
def test_get_source_follows_relationship_path(schema) -> None:
    form = ModelForm(schema=schema, item_class=Book)

    assert form.get_source().model is Book
    assert form.get_source("author.publisher").model is Publisher


@pytest.mark.unit
def test_get_source_rejects_unknown_segment(schema) -> None:
    form = ModelForm(schema=schema, item_class=Book)

    with pytest.raises(SourceResolutionError) as exc_info:
        form.get_source("author.agent")

    assert "agent" in exc_info.value.message


@pytest.mark.unit
def test_get_source_without_schema_is_none() -> None:
    assert ModelForm(item_class=Book).get_source("author") is None


@pytest.mark.unit
def test_unique_constraints_exclude_primary_key(schema) -> None:
    form = ModelForm(schema=schema, item_class=Book)

    assert form.unique_constraints == ["uq_books_title_author"]


@pytest.mark.unit
def test_unique_message_for_constraint_defaults_and_is_stored(schema) -> None:
    form = ModelForm(schema=schema, item_class=Book, unique_messages={"custom": "重复"})

    assert form.unique_message_for_constraint("custom") == "重复"
    message = form.unique_message_for_constraint("uq_books_title_author")
    assert "{0}" in message
    assert form.unique_messages["uq_books_title_author"] == message


@pytest.mark.unit
def test_rec_update_flags_merge_defaults_and_overrides(schema) -> None:
    form = ModelForm(schema=schema, item_class=Book, rec_update_flags={"unknown_params_ok": False})

    assert form.rec_update_flags == {"unknown_params_ok": False}
    form.set_rec_update_flag("unknown_params_ok", True)
    assert form.rec_update_flags["unknown_params_ok"] is True

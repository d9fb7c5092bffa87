import pytest

from agent.action_catalog import (
    ACTION_KEYWORDS,
    ACTION_PARAMS,
    application_for_action,
    connector_app_name,
    get_extraction_hint,
    get_param_spec,
    list_supported_apps,
)
from agent.errors import MissingRequiredParameters
from agent.field_mapping import ensure_required, find_missing_required, remap_fields


def test_remap_moves_alias_to_canonical():
    out = remap_fields({"to": "a@b.com"}, {"to": "recipient_email"})
    assert out == {"recipient_email": "a@b.com"}


def test_remap_never_overwrites_canonical():
    out = remap_fields({"to": "x@y.com", "recipient_email": "a@b.com"}, {"to": "recipient_email"})
    assert out["recipient_email"] == "a@b.com"
    assert out["to"] == "x@y.com"


def test_remap_is_idempotent_and_pure():
    source = {"message": "hi", "email": "a@b.com"}
    synonyms = get_param_spec("GMAIL_SEND_EMAIL").synonyms
    once = remap_fields(source, synonyms)
    assert once == {"body": "hi", "recipient_email": "a@b.com"}
    assert remap_fields(once, synonyms) == once
    assert source == {"message": "hi", "email": "a@b.com"}


def test_remap_first_alias_wins_when_several_present():
    out = remap_fields({"to": "first@b.com", "email": "second@b.com"}, get_param_spec("GMAIL_SEND_EMAIL").synonyms)
    assert out["recipient_email"] == "first@b.com"
    assert out["email"] == "second@b.com"


def test_find_missing_required_keeps_declared_order():
    missing = find_missing_required({"subject": "x", "body": "  "}, ("recipient_email", "subject", "body"))
    assert missing == ["recipient_email", "body"]


def test_find_missing_required_treats_empty_containers_as_missing():
    assert find_missing_required({"attendees": [], "n": 0}, ("attendees", "n")) == ["attendees"]


def test_ensure_required_names_missing_fields():
    with pytest.raises(MissingRequiredParameters) as exc_info:
        ensure_required({"owner": "facebook"}, ("owner", "repo"))
    assert exc_info.value.missing == ("repo",)
    assert str(exc_info.value) == "Missing required parameters: repo"


def test_catalog_tables_are_immutable():
    with pytest.raises(TypeError):
        ACTION_PARAMS["NEW_ACTION"] = None  # type: ignore[index]
    with pytest.raises(TypeError):
        get_param_spec("GMAIL_SEND_EMAIL").synonyms["to"] = "x"  # type: ignore[index]


def test_catalog_required_fields_are_never_synonym_aliases():
    for spec in ACTION_PARAMS.values():
        assert not set(spec.required) & set(spec.synonyms)
        assert set(spec.synonyms.values()) <= set(spec.all_fields)


def test_catalog_keyword_entries_are_lowercase_and_unique():
    for entries in ACTION_KEYWORDS.values():
        action_ids = [entry.action_id for entry in entries]
        assert len(action_ids) == len(set(action_ids))
        for entry in entries:
            assert entry.keywords
            assert all(keyword == keyword.lower() for keyword in entry.keywords)


def test_catalog_helpers():
    assert connector_app_name(" GoogleDocs ") == "GOOGLEDOCS"
    assert connector_app_name("notion") == "NOTION"
    assert application_for_action("GMAIL_SEND_EMAIL") == "GMAIL"
    assert "recipient_email" in get_extraction_hint("gmail_send_email")
    assert get_extraction_hint("YOUTUBE_LIKE_VIDEO") == ""
    apps = {item["id"]: item for item in list_supported_apps()}
    assert apps["gmail"]["name"] == "GMAIL"
    assert "GMAIL_SEND_EMAIL" in apps["gmail"]["actions"]

import pytest

from userdesk.models import MutationDraft, NAME_MAX_LENGTH, User, split_tokens


def test_split_tokens_trims_and_drops_empty_tokens() -> None:
    assert split_tokens("a, b ,  ,b") == ["a", "b", "b"]


def test_split_tokens_of_blank_input_is_empty() -> None:
    assert split_tokens("") == []
    assert split_tokens(" , ,") == []
    assert split_tokens(None) == []


def test_user_from_payload_normalises_missing_sequences() -> None:
    user = User.from_payload({"id": 7, "name": "Grace"})
    assert user == User(id="7", name="Grace", roles=(), groups=())


def test_user_from_payload_accepts_mongo_identifier() -> None:
    user = User.from_payload({"_id": "abc123", "name": "Linus", "roles": ["ADMIN"], "groups": None})
    assert user.id == "abc123"
    assert user.roles == ("ADMIN",)
    assert user.groups == ()


def test_user_from_payload_requires_identifier() -> None:
    with pytest.raises(ValueError):
        User.from_payload({"name": "Nobody"})


def test_draft_from_user_joins_sequences() -> None:
    draft = MutationDraft.from_user(User(id="1", name="Ada", roles=("ADMIN", "PERSONAL"), groups=("GROUP_1",)))
    assert draft.roles_text == "ADMIN, PERSONAL"
    assert draft.groups_text == "GROUP_1"


def test_draft_validation_reports_each_field() -> None:
    errors = MutationDraft(name="  ", roles_text="", groups_text="   ").validate()
    assert set(errors) == {"name", "roles", "groups"}

    too_long = MutationDraft(name="x" * (NAME_MAX_LENGTH + 1), roles_text="A", groups_text="B")
    assert "name" in too_long.validate()


def test_draft_accepts_text_that_normalises_to_nothing() -> None:
    draft = MutationDraft(name="Ada", roles_text=" , ", groups_text="GROUP_1")
    assert draft.validate() == {}
    assert draft.to_payload() == {"name": "Ada", "roles": [], "groups": ["GROUP_1"]}

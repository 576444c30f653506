import pytest

from support_form.errors import FlowError
from support_form.flow import state_machine as sm
from support_form.flow.definitions import (
    ADVANCED_FILE_FIELDS,
    ADVANCED_FLOW,
    FLOWS,
    SUPPORT_FLOW,
    SUPPORT_INPUT_FIELDS,
    get_flow,
)


def test_registry():
    assert set(FLOWS) == {"support", "advanced"}
    assert get_flow("support") is SUPPORT_FLOW
    with pytest.raises(FlowError, match="Unknown flow"):
        get_flow("missing")


@pytest.mark.parametrize("flow", [SUPPORT_FLOW, ADVANCED_FLOW])
def test_parents_declared_before_children(flow):
    seen = set()
    for g in flow.groups:
        assert g.after is None or g.after in seen, g.key
        seen.add(g.key)


@pytest.mark.parametrize("flow", [SUPPORT_FLOW, ADVANCED_FLOW])
def test_field_kinds_and_options(flow):
    for g in flow.groups:
        for f in g.fields:
            assert f.kind in sm.FIELD_KINDS
            if f.kind == sm.SELECT:
                assert f.options
            if f.kind == sm.FILE:
                assert not f.required
                assert f.max_bytes > 0


def test_resets_refer_to_real_fields():
    for source, targets in ADVANCED_FLOW.resets.items():
        assert ADVANCED_FLOW.fields_named(source)
        for t in targets:
            # helpOption is a submitted value with no question of its own
            assert t == "helpOption" or ADVANCED_FLOW.fields_named(t)


def test_file_fields_match_advanced_groups():
    declared = {f.name for g in ADVANCED_FLOW.groups for f in g.fields if f.kind == sm.FILE}
    assert declared == set(ADVANCED_FILE_FIELDS)


def test_support_variables_cover_input_fields():
    variables = SUPPORT_FLOW.build_variables({"name": " Al "}, {})
    data = variables["input"]
    assert set(data) == set(SUPPORT_INPUT_FIELDS) | {"files"}
    assert data["name"] == "Al"
    assert data["email"] is None
    assert data["files"] == []


def test_advanced_variables_wallet_prefers_branch_field():
    answers = {
        "initialQuestion": "no",
        "tokenIssue": "no",
        "issueType": "Token Swapping / Debt Repayment",
        "walletAddress": "0x" + "1" * 40,
        "tokenSwapWalletAddress": "0x" + "2" * 40,
    }
    assert ADVANCED_FLOW.build_variables(answers, {})["walletAddress"] == "0x" + "2" * 40


def test_group_lookup():
    assert ADVANCED_FLOW.group("wallet_details").submit is True
    with pytest.raises(KeyError):
        ADVANCED_FLOW.group("nope")

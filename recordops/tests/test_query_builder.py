# recordops/tests/test_query_builder.py
import pytest

from recordops.engine.planner import count_batches, plan_batches
from recordops.engine.query_builder import build_query, validate_conditions
from recordops.exceptions import ConditionValidationError
from recordops.models.conditions import Condition, NumberValue, Operator


def test_valid_conditions_have_no_error():
    conds = [Condition("company", "==", "AAA"), Condition("age", ">=", "30")]
    assert validate_conditions(conds) is None


def test_empty_conditions_rejected():
    assert validate_conditions([]) is not None


@pytest.mark.parametrize("blank", ["", "   "])
def test_blank_field_rejected(blank):
    conds = [Condition("company", "==", "AAA"), Condition(blank, "==", "x")]
    err = validate_conditions(conds)
    assert err is not None and "condition 2" in err


def test_blank_value_only_allowed_for_list_operators():
    assert validate_conditions([Condition("company", "==", "")]) is not None
    for op in ("in", "not-in", "array-contains-any"):
        assert validate_conditions([Condition("company", op, "")]) is None


def test_null_value_is_not_blank():
    assert validate_conditions([Condition("deletedAt", "==", None)]) is None


def test_build_query_coerces_once():
    q = build_query(" employees ", [Condition(" age ", "<", "40")])
    assert q.collection == "employees"
    (p,) = q.predicates
    assert p.field == "age"
    assert p.operator is Operator.LT
    assert p.value == NumberValue(40)


def test_build_query_fails_fast():
    with pytest.raises(ConditionValidationError):
        build_query("employees", [])
    with pytest.raises(ConditionValidationError):
        build_query("", [Condition("a", "==", 1)])


def test_null_only_with_equality():
    with pytest.raises(ConditionValidationError):
        build_query("employees", [Condition("age", ">", "null")])


def test_allowlist():
    conds = [Condition("a", "==", 1)]
    build_query("employees", conds, allowlist=["employees"])
    with pytest.raises(ConditionValidationError):
        build_query("vendors", conds, allowlist=["employees"])


@pytest.mark.parametrize(
    "n, size",
    [(0, 500), (1, 500), (499, 500), (500, 500), (501, 500), (1200, 500), (7, 3), (9, 3)],
)
def test_batch_partition_law(n, size):
    records = list(range(n))
    batches = plan_batches(records, size)
    assert len(batches) == count_batches(n, size) == -(-n // size)
    if n:
        assert len(batches[-1]) == (n % size or size)
    # contiguous and order preserving
    assert [x for b in batches for x in b] == records


def test_planner_does_not_clamp_to_store_cap():
    batches = plan_batches(list(range(1200)), 1000)
    assert [len(b) for b in batches] == [1000, 200]


def test_planner_rejects_zero_batch_size():
    with pytest.raises(ValueError):
        plan_batches([1], 0)

from recon.diff import diff_snapshots, diff_types, set_difference
from recon.snapshot import RecordSnapshot


def _snapshot(store, *ids):
    return RecordSnapshot(store=store, record_type="A", ids=tuple(str(value) for value in ids))


def test_set_difference_keeps_reference_order():
    assert set_difference(["c", "a", "b", "d"], ["b", "x"]) == ["c", "a", "d"]


def test_set_difference_accepts_any_iterable_comparand():
    comparand = (value for value in ["2"])

    assert set_difference(["1", "2", "3"], comparand) == ["1", "3"]


def test_set_difference_does_not_repeat_items():
    assert set_difference(["a", "a", "b"], []) == ["a", "b"]


def test_one_sided_mismatch():
    discrepancies = diff_snapshots(_snapshot("source", 1, 2, 3), _snapshot("target", 1, 2))

    assert discrepancies.missing_in_target == ("3",)
    assert discrepancies.extra_in_target == ()
    assert not discrepancies.is_empty


def test_accounting_invariant_holds_in_both_directions():
    source = _snapshot("source", *range(0, 60))
    target = _snapshot("target", *range(40, 90))

    discrepancies = diff_snapshots(source, target)

    common = set(source.ids) & set(target.ids)
    assert source.count == len(common) + len(discrepancies.missing_in_target)
    assert target.count == len(common) + len(discrepancies.extra_in_target)
    assert not set(discrepancies.missing_in_target) & set(target.ids)
    assert not set(discrepancies.extra_in_target) & set(source.ids)


def test_type_catalog_diff_reports_both_sides():
    catalog = diff_types(["A", "B", "C"], ["C", "A", "D"])

    assert catalog.missing_in_target == ("B",)
    assert catalog.extra_in_target == ("D",)
    assert not catalog.matches
    assert catalog.to_dict()["source_types"] == ["A", "B", "C"]

import json

import pytest

from recon.diff import diff_types
from recon.report import RUN_MARKER_FILE, DiscrepancyReporter, type_dir_name
from recon.results import RunSummary, TypeReport
from recon.snapshot import RecordSnapshot


def _report(record_type="Building", source_ids=("1", "2", "3"), target_ids=("2", "3", "4")):
    source = RecordSnapshot(
        store="source",
        record_type=record_type,
        ids=source_ids,
        records=tuple({"id": value} for value in source_ids),
        pages_fetched=1,
    )
    target = RecordSnapshot(
        store="target",
        record_type=record_type,
        ids=target_ids,
        records=tuple({"id": value} for value in target_ids),
        pages_fetched=1,
    )
    return TypeReport.build(source, target)


def test_reset_replaces_previous_run_output(tmp_path):
    root = tmp_path / "logs"
    stale = root / "OldType"
    stale.mkdir(parents=True)
    (stale / "summary.txt").write_text("old")
    (root / "master_summary.txt").write_text("old")
    reporter = DiscrepancyReporter(str(root))

    reporter.reset()

    assert root.is_dir()
    assert [path.name for path in root.iterdir()] == [RUN_MARKER_FILE]


def test_reset_clears_output_of_an_interrupted_run(tmp_path):
    root = tmp_path / "logs"
    reporter = DiscrepancyReporter(str(root))
    reporter.reset()
    (root / "OldType").mkdir()

    reporter.reset()

    assert not (root / "OldType").exists()


def test_reset_refuses_unrelated_directory(tmp_path):
    keep = tmp_path / "notes.txt"
    keep.write_text("mine")
    reporter = DiscrepancyReporter(str(tmp_path))

    with pytest.raises(FileExistsError):
        reporter.reset()

    assert keep.read_text() == "mine"


def test_reset_rejects_a_file_path(tmp_path):
    target = tmp_path / "logs"
    target.write_text("not a directory")

    with pytest.raises(NotADirectoryError):
        DiscrepancyReporter(str(target)).reset()

    assert target.read_text() == "not a directory"


def test_type_report_writes_listings_and_dumps(tmp_path):
    reporter = DiscrepancyReporter(str(tmp_path), source_url="http://src", target_url="http://tgt")

    location = reporter.write_type_report(_report())

    type_dir = tmp_path / "Building"
    assert location == str(type_dir)
    summary = (type_dir / "summary.txt").read_text()
    assert "Source API: http://src" in summary
    assert "Missing in target: 1" in summary
    assert "Extra in target: 1" in summary
    missing = (type_dir / "missing_in_target.txt").read_text().splitlines()
    assert missing[0] == "# Entities present in SOURCE but MISSING in TARGET"
    assert "# Total: 1" in missing
    assert missing[-1] == "1"
    assert (type_dir / "extra_in_target.txt").read_text().splitlines()[-1] == "4"
    dump = json.loads((type_dir / "source_entities_all.json").read_text())
    assert dump == [{"id": "1"}, {"id": "2"}, {"id": "3"}]


def test_clean_type_has_no_listings(tmp_path):
    reporter = DiscrepancyReporter(str(tmp_path), dump_snapshots=False)

    reporter.write_type_report(_report(source_ids=("1",), target_ids=("1",)))

    names = sorted(path.name for path in (tmp_path / "Building").iterdir())
    assert names == ["summary.json", "summary.txt"]


def test_type_dir_name_is_filesystem_safe_and_distinct():
    uri = "https://uri.etsi.org/ngsi-ld/default-context/Building"

    name = type_dir_name(uri)

    assert "/" not in name and ":" not in name
    assert name != type_dir_name("https://uri.etsi.org/ngsi-ld/default-context_Building")
    assert type_dir_name("Building") == "Building"
    assert type_dir_name("..") != ".."


@pytest.mark.parametrize("reserved", ["master_summary.txt", "run_summary.json"])
def test_type_named_like_a_run_file_gets_its_own_directory(tmp_path, reserved):
    reporter = DiscrepancyReporter(str(tmp_path))
    report = _report(record_type=reserved)
    location = reporter.write_type_report(report)

    summary = RunSummary.from_reports([report], source_url="", target_url="", locations={reserved: location})
    reporter.write_summary(summary)

    assert type_dir_name(reserved) != reserved
    assert (tmp_path / "master_summary.txt").is_file()
    assert (tmp_path / "run_summary.json").is_file()


def test_summary_lists_totals_and_type_locations(tmp_path):
    reporter = DiscrepancyReporter(str(tmp_path))
    report = _report()
    location = reporter.write_type_report(report)
    summary = RunSummary.from_reports(
        [report],
        source_url="http://src",
        target_url="http://tgt",
        catalog=diff_types(["Building", "Device"], ["Building"]),
        locations={"Building": location},
    )

    reporter.write_summary(summary)

    text = (tmp_path / "master_summary.txt").read_text()
    assert "Total source entities: 3" in text
    assert "Missing in target: Device" in text
    assert "  - Building: Building/" in text
    payload = json.loads((tmp_path / "run_summary.json").read_text())
    assert payload["status"] == "discrepancy_found"
    assert payload["summary"]["missing_in_target"] == 1
    assert payload["reports"] == {"Building": location}

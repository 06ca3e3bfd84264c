from __future__ import annotations

from datetime import date

from app.models.premises_visit import VisitFilters, VisitStatus
from app.services.premises.aggregator import aggregate, apply_filters, build_visits
from tests.helpers.premises_fixtures import (
    bangkit_row,
    mapping_row,
    maju_row,
    three_round_windows,
    tracking_row,
)

TODAY = date(2025, 2, 10)


def _visits(mapping, tracking=(), bangkit=(), maju=(), windows=None, today=TODAY):
    return build_visits(
        mapping,
        tracking,
        bangkit,
        maju,
        three_round_windows() if windows is None else windows,
        today=today,
    )


def test_mentee_without_evidence_in_round_one_is_pending():
    result = aggregate([mapping_row("Aisyah", "Zul")], [], [], [], [], today=TODAY)

    assert len(result.visits) == 1
    visit = result.visits[0]
    assert visit.mentee_name == "Aisyah"
    assert visit.mentor_name == "Zul"
    assert visit.status is VisitStatus.PENDING
    assert visit.source == "-"
    assert visit.current_round == 1
    assert visit.visit_date is None
    assert visit.mentee_email == "aisyah@example.com"
    assert result.summary.total_visits == 1
    assert result.summary.pending == 1


def test_maju_photo_evidence_in_round_three():
    visits = _visits(
        [mapping_row("Badrul", batch="Batch 5 Bangkit", program="Maju")],
        maju=[maju_row("Badrul", photos='["url1","url2"]')],
        today=date(2025, 8, 1),
    )

    assert visits[0].current_round == 3
    assert visits[0].status is VisitStatus.COMPLETED
    assert visits[0].visit_date is None
    assert visits[0].source == "Laporan Maju (Gambar)"


def test_tracking_form_date_takes_priority():
    visits = _visits(
        [mapping_row("Chong")],
        tracking=[tracking_row("Chong", "2025-01-20")],
        bangkit=[bangkit_row("Chong", visit_date="2025-02-01", checked="TRUE")],
    )

    assert visits[0].visit_date == "2025-01-20"
    assert visits[0].source == "UM Form"


def test_each_mentee_is_read_from_its_own_programme_tab():
    visits = _visits(
        [
            mapping_row("Dina", program="Bangkit"),
            mapping_row("Eli", program="Maju"),
        ],
        bangkit=[bangkit_row("Eli", visit_date="2025-01-01")],
        maju=[maju_row("Dina", visit_date="2025-01-01")],
        today=date(2025, 5, 1),
    )

    assert [visit.status for visit in visits] == [VisitStatus.OVERDUE, VisitStatus.OVERDUE]


def test_missing_program_defaults_to_bangkit():
    visits = _visits(
        [mapping_row("Farid", program="")],
        bangkit=[bangkit_row("Farid", checked="TRUE")],
    )

    assert visits[0].program == "Bangkit"
    assert visits[0].source == "Laporan Bangkit (Checkbox)"


def test_first_mapping_row_wins_for_duplicate_mentees():
    visits = _visits(
        [
            mapping_row("Gita", "Zul", batch="Batch 5 Bangkit"),
            mapping_row("Gita", "Hani", batch="Batch 9 Maju", program="Maju"),
        ]
    )

    assert len(visits) == 1
    assert visits[0].mentor_name == "Zul"
    assert visits[0].batch == "Batch 5 Bangkit"


def test_rows_without_mentee_or_mentor_are_skipped():
    visits = _visits(
        [
            mapping_row("", "Zul"),
            mapping_row("Ika", ""),
            mapping_row("  ", "Zul"),
            mapping_row("Jamal", "Zul"),
        ]
    )

    assert [visit.mentee_name for visit in visits] == ["Jamal"]


def test_mentee_name_falls_back_to_nama_usahawan_column():
    visits = _visits([mapping_row("Kamal", mentee_column="Nama Usahawan")])

    assert visits[0].mentee_name == "Kamal"


def test_blank_emails_are_none():
    row = mapping_row("Lina")
    row["Email Usahawan"] = ""

    visits = _visits([row])

    assert visits[0].mentee_email is None
    assert visits[0].mentor_email == "zul@example.com"


def test_round_is_resolved_per_batch():
    visits = _visits(
        [
            mapping_row("Mira", batch="Batch 5 Bangkit"),
            mapping_row("Nora", batch="Batch 8 Bangkit"),
        ],
        today=date(2025, 5, 1),
    )

    assert [visit.current_round for visit in visits] == [2, 1]
    assert [visit.status for visit in visits] == [VisitStatus.OVERDUE, VisitStatus.PENDING]


def _mixed_mapping():
    return [
        mapping_row("Aina", batch="Batch 5 Bangkit", program="Bangkit"),
        mapping_row("Bob", batch="Batch 5 Bangkit", program="Bangkit"),
        mapping_row("Cici", batch="Batch 2 Maju", program="Maju"),
        mapping_row("Dan", batch="Batch 2 Maju", program="Maju"),
    ]


def _mixed_result(filters):
    return aggregate(
        _mixed_mapping(),
        [tracking_row("Aina", "2025-04-02")],
        [],
        [maju_row("Cici", photos='["x"]')],
        three_round_windows("Batch 5 Bangkit"),
        filters,
        today=date(2025, 5, 1),
    )


def test_summary_counts_match_filtered_visits():
    result = _mixed_result(VisitFilters())

    summary = result.summary
    assert summary.total_visits == len(result.visits) == 4
    assert summary.completed + summary.pending + summary.overdue == summary.total_visits
    assert summary.completed == 2
    assert summary.overdue == 1
    assert summary.pending == 1
    assert summary.with_date == 1


def test_filters_are_applied_after_aggregation():
    result = _mixed_result(VisitFilters(program="maju", status="completed"))

    assert [visit.mentee_name for visit in result.visits] == ["Cici"]
    assert result.summary.total_visits == 1
    assert result.summary.completed == 1
    assert result.total_before_filters == 4
    assert result.available_batches == ["Batch 2 Maju", "Batch 5 Bangkit"]
    assert result.available_programs == ["Bangkit", "Maju"]


def test_batch_filter_is_exact():
    result = _mixed_result(VisitFilters(batch="Batch 2"))

    assert result.visits == []
    assert result.summary.total_visits == 0


def test_all_disables_filters():
    visits = _visits(_mixed_mapping())

    assert apply_filters(visits, VisitFilters(program="all", batch="all", status="all")) == visits
    assert apply_filters(visits, VisitFilters(program="", batch="", status="")) == visits

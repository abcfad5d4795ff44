"""
Tests for the reconciliation engine: classification rules, scenarios and
the invariants every GRN line must satisfy.
"""

import logging

import pytest

from grn_core.aggregation import aggregate_po, aggregate_put_away, aggregate_qc_fail
from grn_core.exceptions import MissingInputError
from grn_core.models import (
    GRNSettings,
    LineOrder,
    LineStatus,
    QCFailMode,
    QCStatus,
    SkuCodeType,
)
from grn_core.reconciliation import (
    DEFAULT_REMARK,
    classify_qc,
    classify_status,
    lines_to_frame,
    reconcile,
)


def run(po_rows, put_away_rows, qc_rows=(), **settings):
    return reconcile(
        aggregate_po(po_rows),
        aggregate_put_away(put_away_rows),
        aggregate_qc_fail(qc_rows),
        GRNSettings(**settings),
    )


def by_sku(lines):
    return {line.sku: line for line in lines}


class TestScenarios:
    def test_simple_match(self):
        lines = run([{"Brand SKU Code": "X1", "Quantity": "10"}], [{"SKU": "X1"}])

        assert len(lines) == 1
        line = lines[0]
        assert line.ordered_qty == 10
        assert line.received_qty == 1
        assert line.passed_qc_qty == 1
        assert line.failed_qc_qty == 0
        assert line.shortage_qty == 9
        assert line.status == LineStatus.SHORTAGE
        assert line.qc_status == QCStatus.PASSED
        assert line.remarks == "Shortage: 9 units."

    def test_not_received(self):
        lines = by_sku(
            run(
                [
                    {"Brand SKU Code": "X1", "Quantity": "1"},
                    {"Brand SKU Code": "X2", "Quantity": "5"},
                ],
                [{"SKU": "X1"}],
            )
        )

        line = lines["X2"]
        assert line.ordered_qty == 5
        assert line.received_qty == 0
        assert line.status == LineStatus.NOT_RECEIVED
        assert line.qc_status == QCStatus.NOT_PERFORMED
        assert line.remarks == "Shortage: 5 units. Not Received: 5 units."
        assert line.bin_summary == ""

    def test_excess_receipt_without_po(self):
        lines = by_sku(
            run(
                [{"Brand SKU Code": "X1", "Quantity": "1"}],
                [{"SKU": "X1"}] + [{"SKU ID": "Y1", "BIN": "C3"}] * 3,
            )
        )

        line = lines["Y1"]
        assert line.ordered_qty == 0
        assert line.received_qty == 3
        assert line.not_ordered_qty == 3
        assert line.excess_qty == 3
        assert line.status == LineStatus.EXCESS_RECEIPT
        assert line.brand_sku == "Y1"
        assert line.size == ""
        assert line.bin_summary == "C3 (3)"
        assert line.remarks == "Excess: 3 units. Not Ordered: 3 units."

    def test_partial_qc_failure_additive(self):
        # Default: rejected units were received on top of the put-away units
        line = run(
            [{"Brand SKU Code": "Z1", "Quantity": "10"}],
            [{"SKU": "Z1"}] * 10,
            [{"SKU": "Z1"}] * 4,
        )[0]

        assert line.received_qty == 14
        assert line.failed_qc_qty == 4
        assert line.passed_qc_qty == 10
        assert line.excess_qty == 4
        assert line.qc_status == QCStatus.PARTIAL
        assert line.status == LineStatus.EXCESS
        assert line.remarks == "Excess: 4 units. QC Failed: 4 units."

    def test_partial_qc_failure_subset(self):
        # Rejected units are among the put-away units already counted
        line = run(
            [{"Brand SKU Code": "Z1", "Quantity": "10"}],
            [{"SKU": "Z1"}] * 10,
            [{"SKU": "Z1"}] * 4,
            qc_fail_mode=QCFailMode.SUBSET,
        )[0]

        assert line.received_qty == 10
        assert line.failed_qc_qty == 4
        assert line.passed_qc_qty == 6
        assert line.qc_status == QCStatus.PARTIAL
        assert line.status == LineStatus.RECEIVED
        assert line.remarks == "QC Failed: 4 units."

    def test_subset_mode_never_counts_fewer_than_rejected(self):
        line = run(
            [{"Brand SKU Code": "Z1", "Quantity": "3"}],
            [{"SKU": "Z1"}],
            [{"SKU": "Z1"}] * 3,
            qc_fail_mode="subset",
        )[0]
        assert line.received_qty == 3
        assert line.passed_qc_qty == 0
        assert line.qc_status == QCStatus.FAILED

    def test_all_units_failed(self):
        lines = by_sku(
            run(
                [
                    {"Brand SKU Code": "W1", "Quantity": "2"},
                    {"Brand SKU Code": "X1", "Quantity": "1"},
                ],
                [{"SKU": "X1"}],
                [{"SKU": "W1", "Remarks": "Damaged"}] * 2,
            )
        )

        line = lines["W1"]
        assert line.received_qty == 2
        assert line.passed_qc_qty == 0
        assert line.qc_status == QCStatus.FAILED
        assert line.status == LineStatus.RECEIVED
        assert line.qc_fail_reasons == "Damaged (2)"
        assert line.remarks == "QC Failed: 2 units."

    def test_exact_receipt_uses_default_remark(self):
        line = run([{"Brand SKU Code": "X1", "Quantity": "2"}], [{"SKU": "X1"}] * 2)[0]
        assert line.status == LineStatus.RECEIVED
        assert line.remarks == DEFAULT_REMARK

    def test_qc_only_sku_is_reported(self):
        lines = by_sku(
            run(
                [{"Brand SKU Code": "X1", "Quantity": "1"}],
                [{"SKU": "X1"}],
                [{"SKU": "Q9"}],
            )
        )
        line = lines["Q9"]
        assert line.ordered_qty == 0
        assert line.received_qty == 1
        assert line.status == LineStatus.EXCESS_RECEIPT
        assert line.qc_status == QCStatus.FAILED


class TestClassification:
    def test_status_later_rules_win(self):
        assert classify_status(5, 5, 0, 0) == LineStatus.RECEIVED
        assert classify_status(10, 5, 5, 0) == LineStatus.SHORTAGE
        assert classify_status(5, 8, 0, 3) == LineStatus.EXCESS
        # Both quantity rules firing: excess is checked last of the two
        assert classify_status(10, 5, 3, 2) == LineStatus.EXCESS
        assert classify_status(5, 0, 5, 0) == LineStatus.NOT_RECEIVED
        assert classify_status(0, 0, 0, 0) == LineStatus.NOT_RECEIVED
        assert classify_status(0, 4, 0, 4) == LineStatus.EXCESS_RECEIPT

    def test_qc_status(self):
        assert classify_qc(received=0, passed=0, failed=0) == QCStatus.NOT_PERFORMED
        assert classify_qc(received=3, passed=3, failed=0) == QCStatus.PASSED
        assert classify_qc(received=3, passed=1, failed=2) == QCStatus.PARTIAL
        assert classify_qc(received=2, passed=0, failed=2) == QCStatus.FAILED


class TestInvariants:
    def test_conservation_and_mutual_exclusion(self, mixed_po, mixed_put_away, mixed_qc_fail):
        for mode in QCFailMode:
            for line in run(mixed_po, mixed_put_away, mixed_qc_fail, qc_fail_mode=mode):
                assert line.received_qty == line.passed_qc_qty + line.failed_qc_qty
                assert not (line.shortage_qty > 0 and line.excess_qty > 0)
                assert line.shortage_qty == max(0, line.ordered_qty - line.received_qty)
                assert line.excess_qty == max(0, line.received_qty - line.ordered_qty)

    def test_every_sku_appears_exactly_once(self, mixed_po, mixed_put_away, mixed_qc_fail):
        lines = run(mixed_po, mixed_put_away, mixed_qc_fail)
        skus = [line.sku for line in lines]
        assert sorted(skus) == ["A", "B", "C", "D", "E", "F"]

    def test_idempotent(self, mixed_po, mixed_put_away, mixed_qc_fail):
        first = run(mixed_po, mixed_put_away, mixed_qc_fail)
        second = run(mixed_po, mixed_put_away, mixed_qc_fail)
        assert first == second
        assert [l.to_record() for l in first] == [l.to_record() for l in second]

    def test_case_and_whitespace_insensitive(self):
        lines = run([{"Brand SKU Code": " abc-1 ", "Quantity": "2"}], [{"SKU": "ABC-1"}])
        assert len(lines) == 1
        assert lines[0].sku == "ABC-1"
        assert lines[0].received_qty == 1

    def test_int_and_float_sku_are_one_line(self):
        lines = run([{"Brand SKU Code": 1001, "Quantity": 1}], [{"SKU ID": 1001.0}])
        assert len(lines) == 1
        assert lines[0].sku == "1001"
        assert lines[0].status == LineStatus.RECEIVED

    def test_po_is_keyed_by_brand_code_only(self):
        po = [{"Brand SKU Code": "B-1", "KNOT SKU Code": "KN-1", "Quantity": 1}]
        lines = by_sku(run(po, [{"SKU ID": "KN-1"}]))

        assert set(lines) == {"B-1", "KN-1"}
        assert lines["B-1"].status == LineStatus.NOT_RECEIVED
        assert lines["KN-1"].status == LineStatus.EXCESS_RECEIPT

    def test_lines_are_immutable(self):
        line = run([{"Brand SKU Code": "X1", "Quantity": "1"}], [{"SKU": "X1"}])[0]
        with pytest.raises(Exception):
            line.received_qty = 5


class TestOrdering:
    def test_input_order(self):
        lines = run(
            [{"Brand SKU Code": "M", "Quantity": "1"}, {"Brand SKU Code": "B", "Quantity": "1"}],
            [{"SKU": "Z"}, {"SKU": "B"}, {"SKU": "A"}],
            [{"SKU": "C"}],
        )
        assert [l.sku for l in lines] == ["M", "B", "Z", "A", "C"]

    def test_sku_order(self):
        lines = run(
            [{"Brand SKU Code": "M", "Quantity": "1"}, {"Brand SKU Code": "B", "Quantity": "1"}],
            [{"SKU": "Z"}, {"SKU": "B"}, {"SKU": "A"}],
            line_order=LineOrder.SKU,
        )
        assert [l.sku for l in lines] == ["A", "B", "M", "Z"]


class TestPreconditions:
    def test_empty_po_raises(self):
        with pytest.raises(MissingInputError) as exc:
            reconcile({}, aggregate_put_away([{"SKU": "X1"}]))
        assert exc.value.source == "purchase_order"
        assert "Purchase Order" in str(exc.value)

    def test_empty_put_away_raises(self):
        with pytest.raises(MissingInputError) as exc:
            reconcile(aggregate_po([{"Brand SKU Code": "X1", "Quantity": "1"}]), {})
        assert exc.value.source == "put_away"

    def test_qc_fail_is_optional(self):
        lines = reconcile(
            aggregate_po([{"Brand SKU Code": "X1", "Quantity": "1"}]),
            aggregate_put_away([{"SKU": "X1"}]),
        )
        assert lines[0].qc_status == QCStatus.PASSED


def test_po_details_pass_through():
    po = [
        {
            "Sno": "1",
            "Brand SKU Code": "b-1",
            "KNOT SKU Code": "k-1",
            "Size": "M",
            "Colors": "Red",
            "Quantity": "10",
            "Unit Price": "500",
            "Amount": "5000",
        }
    ]
    line = run(po, [{"SKU ID": "B-1", "BIN": "A1"}])[0]

    assert line.sku == "B-1"
    assert line.sno == "1"
    assert line.brand_sku == "b-1"
    assert line.knot_sku == "k-1"
    assert line.size == "M"
    assert line.color == "Red"
    assert line.unit_price == "500"
    assert line.amount == "5000"
    assert line.display_sku(SkuCodeType.BRAND) == "b-1"
    assert line.display_sku(SkuCodeType.KNOT) == "k-1"


def test_display_sku_falls_back_to_key():
    line = run([{"SKU": "s-1", "Quantity": "1"}], [{"SKU": "S-1"}])[0]
    assert line.display_sku(SkuCodeType.KNOT) == "S-1"


def test_to_record_uses_export_labels():
    line = run([{"Brand SKU Code": "X1", "Quantity": "2"}], [{"SKU": "X1", "BIN": "A1"}])[0]
    record = line.to_record()

    assert record["Ordered Qty"] == 2
    assert record["Received Qty"] == 1
    assert record["Status"] == "Shortage"
    assert record["QC Status"] == "Passed"
    assert record["Bin Summary"] == "A1 (1)"


def test_lines_to_frame():
    lines = run([{"Brand SKU Code": "X1", "Quantity": "2"}], [{"SKU": "X1"}, {"SKU": "Y1"}])
    df = lines_to_frame(lines)

    assert list(df["SKU"]) == ["X1", "Y1"]
    assert "Not Ordered Qty" in df.columns
    assert lines_to_frame([]).empty


def test_logs_run_totals(caplog):
    with caplog.at_level(logging.INFO, logger="grn_core.reconciliation"):
        run([{"Brand SKU Code": "X1", "Quantity": "1"}], [{"SKU": "X1"}, {"SKU": "Y1"}])
    assert "Reconciled 2 SKUs" in caplog.text

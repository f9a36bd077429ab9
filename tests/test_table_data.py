from insight_backend.table_data import (
    extract_insights_from_report,
    extract_results_from_messages,
    normalize_table_data,
    preserve_column_order,
    process_report_data_for_table,
    rows_to_csv,
)


def test_header_row_arrays_become_objects() -> None:
    assert normalize_table_data([["a", "b"], [1, 2], [3, 4]]) == [{"a": 1, "b": 2}, {"a": 3, "b": 4}]


def test_short_rows_are_padded_with_none() -> None:
    assert normalize_table_data([["a", "b"], [1]]) == [{"a": 1, "b": None}]


def test_normalization_is_idempotent() -> None:
    rows = [{"region": "East", "sales": 10}, {"region": "West", "sales": 4}]
    once = normalize_table_data(rows)
    assert once == rows
    assert normalize_table_data(once) == once


def test_missing_or_invalid_results_are_empty() -> None:
    assert normalize_table_data(None) == []
    assert normalize_table_data([]) == []
    assert normalize_table_data("not rows") == []


def test_unexpected_format_is_returned_unchanged() -> None:
    assert normalize_table_data([1, 2, 3]) == [1, 2, 3]


def test_column_order_follows_first_row() -> None:
    rows = [{"b": 1, "a": 2, "c": 3}, {"b": 4, "a": 5, "c": 6}]
    ordered = preserve_column_order(rows)
    assert ordered["columnOrder"] == ["b", "a", "c"]
    assert all(list(row.keys()) == ordered["columnOrder"] for row in ordered["results"])
    assert preserve_column_order([]) == {"results": [], "columnOrder": []}


def test_results_come_from_latest_assistant_message() -> None:
    messages = [
        {"role": "assistant", "content": "old", "results": [{"x": 1}]},
        {"role": "user", "content": "again"},
        {"role": "assistant", "content": "new", "results": [{"x": 2}], "retries": 1},
    ]
    extracted = extract_results_from_messages(messages)
    assert extracted == {"results": [{"x": 2}], "error": None, "retries": 1}
    assert extract_results_from_messages([]) == {"results": [], "error": None, "retries": 0}


def test_report_table_prefers_table_visualization() -> None:
    report = {
        "visualizations": [
            {"type": "bar", "data": [{"x": 1}]},
            {"type": "table", "data": [{"y": 2}]},
        ]
    }
    assert process_report_data_for_table(report) == [{"y": 2}]
    assert process_report_data_for_table({"data": [{"z": 3}]}) == [{"z": 3}]
    assert process_report_data_for_table({"visualizations": [{"type": "bar", "data": [{"x": 1}]}]}) == [{"x": 1}]
    assert process_report_data_for_table(None) == []


def test_insights_extraction() -> None:
    assert extract_insights_from_report({"insights": [{"title": "t"}]}) == [{"title": "t"}]
    assert extract_insights_from_report({"insights": "nope"}) == []


def test_rows_to_csv_keeps_column_order() -> None:
    csv_text = rows_to_csv([{"region": "East", "sales": 100}, {"region": "West", "sales": 50}])
    assert csv_text.splitlines() == ["region,sales", "East,100", "West,50"]
    assert rows_to_csv([], ["a", "b"]).splitlines() == ["a,b"]

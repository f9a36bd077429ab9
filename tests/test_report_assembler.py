import pytest

from insight_backend.config import REPORT_EMPTY_CONTENT
from insight_backend.chart_utils import DEFAULT_COLORS
from insight_backend.grouping import CompositeDetector, default_detector
from insight_backend.report_assembler import ReportAssembler, assemble, split_insights
from insight_backend.report_gate import validate_report
from insight_backend.report_models import Insight


def test_empty_response_still_has_a_section() -> None:
    report = assemble({}, "show me data", "ds1")
    assert len(report.sections) == 1
    assert report.sections[0].content == REPORT_EMPTY_CONTENT
    assert report.sections[0].visualizations == []
    assert report.results == []
    assert report.kind == "simple"
    assert report.title == "show me data"
    assert report.dataset_id == "ds1"
    assert report.id.startswith("report-")
    validate_report(report.to_payload())


@pytest.mark.parametrize(
    "raw",
    [
        None,
        [],
        "oops",
        {"results": "x", "visualizations": 3, "insights": {}},
        {"results": [{1: "a", "b": 2}]},
        {"visualizations": [{"type": "table", "data": [{2024: 5, "region": "East"}]}]},
    ],
)
def test_malformed_responses_never_raise(raw) -> None:
    report = assemble(raw, "", None)
    assert len(report.sections) >= 1
    assert report.title == "Untitled Report"
    validate_report(report.to_payload())


def test_simple_path_wraps_rows_in_one_section() -> None:
    response = {
        "results": [["region", "sales"], ["East", 100], ["West", 50]],
        "aiResponse": "Sales by region.",
    }
    report = assemble(response, "sales by region", "ds1")
    section = report.sections[0]
    assert report.kind == "simple"
    assert section.title == "Query Results"
    assert section.content == "Sales by region."
    assert section.table_data == [{"region": "East", "sales": 100}, {"region": "West", "sales": 50}]
    assert report.results == section.table_data
    assert [viz.type for viz in section.visualizations] == ["pie"]
    assert section.visualizations[0].config == {"xAxis": "region", "yAxis": "sales"}


def test_simple_path_default_content() -> None:
    report = ReportAssembler(default_content="Your data").assemble({"results": [{"a": "x"}]}, "q", None)
    assert report.sections[0].content == "Your data"
    assert report.sections[0].visualizations[0].type == "table"


def test_table_visualization_gets_a_derived_bar() -> None:
    response = {
        "narrative": "Product B sells best.",
        "visualizations": [
            {
                "type": "table",
                "title": "Top products",
                "data": [{"id": 1, "product": "A", "revenue": 10}, {"id": 2, "product": "B", "revenue": 30}],
            }
        ],
    }
    report = assemble(response, "top products", "ds1")
    section = report.sections[0]
    assert report.kind == "visualization"
    assert section.title == "Analysis Results"
    assert section.content == "Product B sells best."
    table, bar = section.visualizations
    assert table.type == "table"
    assert bar.type == "bar"
    assert bar.title == "Revenue by Product"
    assert bar.config["xAxis"] == "product"
    assert bar.config["yAxis"] == "revenue"
    assert [row["revenue"] for row in bar.data] == [30, 10]
    assert [row["revenue"] for row in table.data] == [10, 30]
    assert bar.config["labels"] == ["B", "A"]
    assert bar.config["color"] == DEFAULT_COLORS[0]


def test_two_column_table_keeps_leading_identifier_as_x() -> None:
    response = {"visualizations": [{"type": "table", "data": [{"id": "a", "value": 1}, {"id": "b", "value": 2}]}]}
    bar = assemble(response, "q", None).sections[0].visualizations[1]
    assert bar.config["xAxis"] == "id"
    assert bar.config["yAxis"] == "value"


def test_unknown_visualization_type_is_reclassified() -> None:
    response = {"visualizations": [{"type": "donut", "data": [{"region": "East", "sales": 1}]}, "junk"]}
    report = assemble(response, "q", None)
    assert [viz.type for viz in report.sections[0].visualizations] == ["pie"]


def test_insights_alone_take_visualization_path() -> None:
    response = {"aiResponse": "Two findings.", "insights": [{"title": "A", "description": "a"}, "plain text"]}
    report = assemble(response, "q", None)
    section = report.sections[0]
    assert report.kind == "visualization"
    assert section.content == "Two findings."
    assert section.insights == [Insight(title="A", description="a"), Insight(title="", description="plain text")]


def test_complex_response_gets_one_section_per_grouping(sales_response) -> None:
    report = assemble(sales_response, "sales overview", "ds1")
    assert report.kind == "complex"
    assert report.title == "Top clients and therapy areas by sales"
    assert report.query == "sales overview"
    assert [s.title for s in report.sections] == ["Top Clients by Sales", "Top Therapy Areas by Sales"]
    assert [len(s.insights) for s in report.sections] == [2, 1]
    assert [i for s in report.sections for i in s.insights] == report.insights

    client_bar = report.sections[0].visualizations[0]
    assert client_bar.type == "bar"
    assert client_bar.config["xAxis"] == "Client"
    assert client_bar.config["yAxis"] == "total_amount"
    assert [row["Client"] for row in client_bar.data] == ["Beta", "Acme"]
    assert client_bar.config["color"] == DEFAULT_COLORS[0]
    assert report.sections[1].visualizations[0].config["color"] == DEFAULT_COLORS[1]
    assert report.sections[0].content == "Analysis of the top clients by total sales value."
    assert report.narrative == "Sales are concentrated in a few accounts."
    assert len(report.results) == 3
    validate_report(report.to_payload())


def test_complex_flag_accepts_string_true(sales_response) -> None:
    sales_response["isComplex"] = "true"
    assert assemble(sales_response, "q", None).kind == "complex"


def test_complex_without_groupings_falls_back_to_one_section() -> None:
    response = {"isComplex": True, "narrative": "Overview.", "insights": ["one", "two", "three"]}
    report = assemble(response, "q", None, detector=CompositeDetector([]))
    assert len(report.sections) == 1
    section = report.sections[0]
    assert section.title == "Analysis Results"
    assert section.content == "Overview."
    assert len(section.insights) == 3


def test_complex_grouping_without_tagged_rows_uses_source_data() -> None:
    response = {
        "isComplex": True,
        "visualizations": [{"type": "bar", "data": [{"region": "East", "sales": 5}, {"region": "West", "sales": 9}]}],
    }
    report = assemble(response, "q", None)
    section = report.sections[0]
    assert section.title == "Region Breakdown"
    derived, source = section.visualizations
    assert [row["sales"] for row in derived.data] == [9, 5]
    assert source.data[0]["region"] == "East"


def test_complex_grouping_without_numeric_column_uses_configured_value_field() -> None:
    detector = default_detector([{"field": "Client", "label": "Clients", "value_field": "total_amount"}])
    response = {"isComplex": True, "visualizations": [{"type": "table", "data": [{"Client": "Acme", "note": "x"}]}]}
    report = ReportAssembler(detector=detector).assemble(response, "q", None)
    bar = report.sections[0].visualizations[0]
    assert report.sections[0].title == "Clients"
    assert bar.type == "bar"
    assert bar.config["xAxis"] == "Client"
    assert bar.config["yAxis"] == "total_amount"
    validate_report(report.to_payload())


def test_non_string_row_keys_become_strings() -> None:
    report = assemble({"results": [{1: "a", "b": 2}]}, "q", None)
    assert report.results == [{"1": "a", "b": 2}]
    assert report.sections[0].table_data == [{"1": "a", "b": 2}]


def test_non_object_rows_are_dropped() -> None:
    report = assemble({"results": [{"a": 1}, 5, "x"]}, "q", None)
    assert report.results == [{"a": 1}]


def test_report_ids_are_unique() -> None:
    ids = {assemble({}, "q", None).id for _ in range(50)}
    assert len(ids) == 50


@pytest.mark.parametrize("count", range(0, 8))
@pytest.mark.parametrize("parts", [1, 2, 3, 4])
def test_insight_split_preserves_total_and_order(count, parts) -> None:
    insights = [Insight(title=str(i)) for i in range(count)]
    chunks = split_insights(insights, parts)
    assert len(chunks) == parts
    assert [i for chunk in chunks for i in chunk] == insights

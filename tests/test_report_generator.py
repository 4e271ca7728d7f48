"""Tests for report serialization and writers."""

import json
from datetime import datetime, timezone

import pytest

from crm_discovery.discovery.auth_prober import AuthProfile
from crm_discovery.discovery.cache_analyzer import CacheProfile
from crm_discovery.discovery.recommendations import Recommendations, synthesize_recommendations
from crm_discovery.discovery.report_generator import (
    DiscoveryReport,
    ReportGenerator,
    report_basename,
)
from crm_discovery.discovery.sampler import (
    ApiProtocol,
    PerformanceMetrics,
    PerformanceResults,
    compare_performance,
)
from crm_discovery.discovery.schema_analyzer import SchemaAnalysis


@pytest.fixture
def report() -> DiscoveryReport:
    graphql = (
        PerformanceMetrics(
            endpoint="graphql/list_contacts",
            method="POST",
            protocol=ApiProtocol.GRAPHQL,
            average_latency=100.0,
            min_latency=50.0,
            max_latency=150.0,
            success_rate=1.0,
            requests_per_second=10.0,
        ),
    )
    rest = (
        PerformanceMetrics(
            endpoint="/rest/people",
            method="GET",
            protocol=ApiProtocol.REST,
            average_latency=120.0,
            min_latency=120.0,
            max_latency=120.0,
            success_rate=0.5,
        ),
    )
    base = DiscoveryReport(
        timestamp=datetime(2024, 5, 1, 12, 30, 15, 250000, tzinfo=timezone.utc),
        service_version="0.30.1",
        performance=PerformanceResults(graphql, rest, compare_performance(graphql, rest)),
        caching=CacheProfile(cacheable=("/rest/me",), ttl_recommendations={"/rest/me": 3600}),
        duration_seconds=42.123,
    )
    return DiscoveryReport(
        timestamp=base.timestamp,
        service_version=base.service_version,
        performance=base.performance,
        caching=base.caching,
        recommendations=synthesize_recommendations(base),
        duration_seconds=base.duration_seconds,
    )


class TestDiscoveryReport:
    """Test the report model."""

    def test_to_dict_sections(self, report: DiscoveryReport) -> None:
        result = report.to_dict()

        assert list(result) == [
            "timestamp",
            "serviceVersion",
            "durationSeconds",
            "performanceMetrics",
            "schemaAnalysis",
            "authAnalysis",
            "rateLimiting",
            "cacheAnalysis",
            "recommendations",
        ]
        assert result["timestamp"] == "2024-05-01T12:30:15.250000+00:00"
        assert result["durationSeconds"] == 42.12
        assert result["performanceMetrics"]["comparison"]["fasterAPI"] == "graphql"
        assert result["cacheAnalysis"]["ttlRecommendations"] == {"/rest/me": 3600}

    def test_mappings_are_read_only(self) -> None:
        selection = {"list_operations": ApiProtocol.REST}
        ttls = {"/rest/me": 3600}
        report = DiscoveryReport(
            timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc),
            service_version="0.30.1",
            schema=SchemaAnalysis(custom_fields={"Person.custom_x": {"type": "String", "kind": "SCALAR"}}),
            auth=AuthProfile(permission_model={"userId": "u-1", "permissions": ["people:read"]}),
            caching=CacheProfile(cacheable=("/rest/me",), ttl_recommendations=ttls),
            recommendations=Recommendations(api_selection=selection),
        )

        with pytest.raises(TypeError):
            report.schema.custom_fields["Person.extra"] = {}
        with pytest.raises(TypeError):
            report.schema.custom_fields["Person.custom_x"]["type"] = "Int"
        with pytest.raises(TypeError):
            report.auth.permission_model["userId"] = "someone-else"
        with pytest.raises(TypeError):
            report.caching.ttl_recommendations["/rest/me"] = 1
        with pytest.raises(TypeError):
            report.recommendations.api_selection["list_operations"] = ApiProtocol.GRAPHQL

        # Mutating the source mappings leaves the report untouched
        ttls["/rest/me"] = 1
        selection["bulk_operations"] = ApiProtocol.REST
        assert report.caching.ttl_recommendations["/rest/me"] == 3600
        assert "bulk_operations" not in report.recommendations.api_selection
        assert report.auth.permission_model["permissions"] == ("people:read",)

    def test_basename_is_filesystem_safe(self, report: DiscoveryReport) -> None:
        name = report_basename(report.timestamp)

        assert name.startswith("api-discovery-2024-05-01T12-30-15")
        for char in ":.+":
            assert char not in name


class TestReportGenerator:
    """Test report writers."""

    def test_save_report(self, tmp_path, report: DiscoveryReport) -> None:
        path = ReportGenerator(tmp_path).save_report(report, tmp_path / "nested" / "report.json")

        assert path.exists()
        assert json.loads(path.read_text()) == report.to_dict()
        assert path.read_text().endswith("\n")

    def test_generate_all(self, tmp_path, report: DiscoveryReport) -> None:
        generated = ReportGenerator(tmp_path / "reports").generate_all(report)

        assert set(generated) == {"json", "markdown"}
        assert generated["json"].suffix == ".json"
        assert generated["markdown"].suffix == ".md"
        assert generated["json"].stem == generated["markdown"].stem
        assert all(path.exists() for path in generated.values())

    def test_generate_without_markdown(self, tmp_path, report: DiscoveryReport) -> None:
        generated = ReportGenerator(tmp_path, include_markdown=False).generate_all(report)

        assert list(generated) == ["json"]
        assert list(tmp_path.glob("*.md")) == []

    def test_compact_json(self, tmp_path, report: DiscoveryReport) -> None:
        path = ReportGenerator(tmp_path, pretty_print=False).save_report(report, tmp_path / "r.json")
        assert len(path.read_text().splitlines()) == 1

    def test_markdown_content(self, report: DiscoveryReport) -> None:
        markdown = ReportGenerator().to_markdown(report)

        assert markdown.startswith("# CRM API Discovery Report")
        assert "**Service Version**: 0.30.1" in markdown
        assert "Faster API: **graphql**" in markdown
        assert "| graphql | graphql/list_contacts | POST | 100ms | 50ms | 150ms | 100% |" in markdown
        assert "| rest | /rest/people | GET | 120ms | 120ms | 120ms | 50% |" in markdown
        assert "| /rest/me | 3600 |" in markdown
        assert "- Implement caching for 1 endpoints" in markdown
        assert "- bulk_operations: graphql" in markdown

    def test_markdown_without_cacheable_endpoints(self, report: DiscoveryReport) -> None:
        empty = DiscoveryReport(timestamp=report.timestamp, service_version="unknown")
        assert "No cacheable endpoints found." in ReportGenerator().to_markdown(empty)

    def test_markdown_table(self) -> None:
        assert ReportGenerator.markdown_table(["A"], []) == []
        assert ReportGenerator.markdown_table(["A", "B"], [["1", "2"]]) == [
            "| A | B |",
            "| --- | --- |",
            "| 1 | 2 |",
            "",
        ]

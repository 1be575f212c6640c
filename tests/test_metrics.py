"""
Unit tests for performance estimation.

The estimator is deterministic, so these tests assert exact values derived
from the default cost table and weights.
"""

import pytest

from flowlens_core.config import AnalysisConfig
from flowlens_core.detectors import Issue, detect
from flowlens_core.enums import IssueCategory, NodeKind, Severity
from flowlens_core.graph import Edge, Graph, Node
from flowlens_core.metrics import PerformanceMetrics, estimate, improvement_percentages


def issue(category, severity):
    return Issue(f"{category.value}-{severity.value}", category, severity)


@pytest.fixture
def simple_graph():
    g = Graph([Node('t', NodeKind.TRIGGER, label='Start'), Node('a', NodeKind.ACTION, label='Send invoice')])
    g.add_edge(Edge('e1', 't', 'a'))
    return g


class TestEstimate:
    def test_clean_graph(self, simple_graph):
        m = estimate(simple_graph, detect(simple_graph))

        assert m.estimated_execution_time_ms == 160.0  # 50 + 100 + 10
        assert m.estimated_memory_mb == 12.0  # 5*2 + 2*1
        assert m.api_call_count == 0
        assert m.data_volume_kb == 5.0  # 2*2 + 1*1
        assert m.error_probability == pytest.approx(0.01)
        assert m.redundant_operation_count == 0

    def test_empty_graph(self):
        m = estimate(Graph(), [])

        assert m.estimated_execution_time_ms == 0.0
        assert m.estimated_memory_mb == 0.0
        assert m.error_probability == pytest.approx(0.01)

    def test_base_cost_table(self):
        kinds = [NodeKind.CONDITION, NodeKind.DATA, NodeKind.INTEGRATION, NodeKind.AGENT, NodeKind.TRANSFORM]
        g = Graph(Node(f'n{k}', kind) for k, kind in enumerate(kinds))
        m = estimate(g, [])

        assert m.estimated_execution_time_ms == 20 + 30 + 500 + 300 + 100
        assert m.api_call_count == 1

    def test_penalties_only_for_fan_in_and_hub(self, simple_graph):
        issues = [
            issue(IssueCategory.FAN_IN, Severity.MEDIUM),
            issue(IssueCategory.HUB, Severity.HIGH),
            issue(IssueCategory.ORPHAN, Severity.HIGH),
            issue(IssueCategory.RATE_LIMIT, Severity.CRITICAL),
            issue(IssueCategory.SIMILAR_NODES, Severity.MEDIUM),
        ]
        m = estimate(simple_graph, issues)

        assert m.estimated_execution_time_ms == 160 + 50 + 150
        assert m.error_probability == pytest.approx(0.01 + 0.2 + 0.1 * 2 + 0.2)
        assert m.redundant_operation_count == 1

    def test_penalized_categories_configurable(self, simple_graph):
        cfg = AnalysisConfig(penalized_categories=frozenset(IssueCategory))
        issues = [
            issue(IssueCategory.ORPHAN, Severity.HIGH),
            issue(IssueCategory.RATE_LIMIT, Severity.CRITICAL),
            issue(IssueCategory.EXTERNAL_CALL, Severity.LOW),
        ]
        m = estimate(simple_graph, issues, cfg)

        assert m.estimated_execution_time_ms == 160 + 150 + 300 + 50

    def test_error_probability_capped(self, simple_graph):
        issues = [issue(IssueCategory.RATE_LIMIT, Severity.CRITICAL)] * 10
        m = estimate(simple_graph, issues)

        assert m.error_probability == 0.99

    def test_orphan_penalty_counted_once(self, simple_graph):
        issues = [issue(IssueCategory.ORPHAN, Severity.LOW)] * 3
        m = estimate(simple_graph, issues)

        assert m.error_probability == pytest.approx(0.21)

    def test_config_declared_integration_counts_as_api_call(self):
        g = Graph([Node('hook', NodeKind.ACTION, config={'nodeType': 'integration'})])
        assert estimate(g, []).api_call_count == 1

    def test_idempotent(self, simple_graph):
        g = simple_graph.with_edge(Edge('e2', 'a', 'a'))
        issues = detect(g, on_cycle="report")

        assert estimate(g, issues) == estimate(g, issues)

    def test_to_dict(self):
        m = PerformanceMetrics(100.0, 10.0, 2, 5.0, 0.1, 1)
        assert m.to_dict() == {
            'estimatedExecutionTimeMs': 100.0,
            'estimatedMemoryMb': 10.0,
            'apiCallCount': 2,
            'dataVolumeKb': 5.0,
            'errorProbability': 0.1,
            'redundantOperationCount': 1,
        }


class TestImprovementPercentages:
    def test_percentages(self):
        before = PerformanceMetrics(200.0, 50.0, 5, 10.0, 0.4, 2)
        after = PerformanceMetrics(140.0, 40.0, 3, 10.0, 0.2, 0)
        pct = improvement_percentages(before, after)

        assert pct['estimated_execution_time_ms'] == pytest.approx(30.0)
        assert pct['estimated_memory_mb'] == pytest.approx(20.0)
        assert pct['api_call_count'] == pytest.approx(40.0)
        assert pct['data_volume_kb'] == 0.0
        assert pct['error_probability'] == pytest.approx(50.0)
        assert pct['redundant_operation_count'] == pytest.approx(100.0)

    def test_zero_before_is_zero_percent(self):
        zero = PerformanceMetrics(0.0, 0.0, 0, 0.0, 0.0, 0)
        pct = improvement_percentages(zero, zero)

        assert all(v == 0.0 for v in pct.values())

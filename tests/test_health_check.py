"""
Tests for utils/health_check.py.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from memory_engine.utils import health_check


@pytest.fixture
def clients():
    with patch.object(health_check, 'BedrockLLM') as llm_cls, \
            patch.object(health_check, 'BedrockEmbed') as embed_cls, \
            patch.object(health_check, 'OpenSearchClient') as opensearch_cls:
        llm_cls.return_value.health_check.return_value = True
        embed_cls.return_value.health_check.return_value = True
        opensearch_cls.return_value.health_check.return_value = True
        yield llm_cls, embed_cls, opensearch_cls


class TestGetHealthStatus:
    def test_all_components_reported(self, clients):
        status = health_check.get_health_status()

        assert set(status) == {'bedrock_llm', 'bedrock_fallback_llm', 'bedrock_embed', 'opensearch'}
        assert all(component['healthy'] for component in status.values())

    def test_unhealthy_component(self, clients):
        _, embed_cls, _ = clients
        embed_cls.return_value.health_check.return_value = False

        status = health_check.get_health_status()

        assert status['bedrock_embed']['healthy'] is False
        assert status['opensearch']['healthy'] is True

    def test_construction_error_is_reported_not_raised(self, clients):
        _, _, opensearch_cls = clients
        opensearch_cls.side_effect = ValueError('Credentials cannot be empty')

        status = health_check.get_health_status()

        assert status['opensearch'] == {'healthy': False,
                                        'service': 'Amazon OpenSearch',
                                        'error': 'Credentials cannot be empty'}
        assert status['bedrock_llm']['healthy'] is True

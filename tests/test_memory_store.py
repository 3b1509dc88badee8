"""
Tests for services/memory_store.py and utils/opensearch_client.py.

Covers:
* query shapes sent to OpenSearch (owner filter, recency sort, window size)
* episodic insert returning the assigned id in one call
* bulk insert skipped for an empty batch
* failure policy: reads come back empty, writes report False/None
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from opensearchpy.exceptions import ConnectionError as OpenSearchConnectionError
from opensearchpy.exceptions import NotFoundError

from memory_engine.models.core import EpisodicMemoryEntry, MemoryEmbedding, MemorySourceType
from memory_engine.services.memory_store import INDEX_PROPERTIES, MemoryStore
from memory_engine.utils.opensearch_client import OpenSearchClient, OpenSearchError

WHEN = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def search_response(sources):
    return {'hits': {'total': {'value': len(sources)}, 'hits': [{'_id': str(i), '_score': None, '_source': s}
                                                                for i, s in enumerate(sources)]}}


@pytest.fixture
def raw_client():
    return MagicMock()


@pytest.fixture
def store(raw_client, opensearch_config, memory_config):
    return MemoryStore(opensearch=OpenSearchClient(opensearch_config, client=raw_client), memory_config=memory_config)


class TestRecentEmbeddings:
    def test_query_shape(self, store, raw_client):
        raw_client.search.return_value = search_response([{'content': 'a', 'embedding': [0.1, 0.2]}])

        assert store.recent_embeddings('user-1') == [('a', [0.1, 0.2])]

        kwargs = raw_client.search.call_args.kwargs
        assert kwargs['index'] == 'test_memory_embeddings'
        body = kwargs['body']
        assert body['size'] == 200
        assert body['query']['bool']['filter'] == [{'term': {'user_id': 'user-1'}}]
        assert body['sort'] == [{'created_at': {'order': 'desc'}}]
        assert body['_source'] == ['content', 'embedding']

    def test_store_failure_reads_as_empty(self, store, raw_client):
        raw_client.search.side_effect = OpenSearchConnectionError('N/A', 'unreachable', None)
        assert store.recent_embeddings('user-1') == []


class TestRecentLongTermMemories:
    def test_window_of_five_newest_first(self, store, raw_client):
        raw_client.search.return_value = search_response([{'content': 'newer'}, {'content': 'older'}])

        assert store.recent_long_term_memories('user-1') == ['newer', 'older']
        body = raw_client.search.call_args.kwargs['body']
        assert body['size'] == 5
        assert raw_client.search.call_args.kwargs['index'] == 'test_long_term_memories'

    def test_store_failure_reads_as_empty(self, store, raw_client):
        raw_client.search.side_effect = RuntimeError('boom')
        assert store.recent_long_term_memories('user-1') == []


class TestWrites:
    def test_add_long_term_memory(self, store, raw_client):
        raw_client.index.return_value = {'result': 'created', '_id': 'lt-1'}
        assert store.add_long_term_memory('user-1', '- values honesty') is True
        document = raw_client.index.call_args.kwargs['body']
        assert document['user_id'] == 'user-1'
        assert document['content'] == '- values honesty'
        assert 'created_at' in document

    def test_add_episodic_memory_returns_assigned_id(self, store, raw_client):
        raw_client.index.return_value = {'result': 'created', '_id': 'ep-42'}
        entry = EpisodicMemoryEntry(user_id='user-1', summary='Started a new job.', raw_text='A: hi\nB: hello',
                                    tags=['work'], created_at=WHEN)

        assert store.add_episodic_memory(entry) == 'ep-42'
        assert raw_client.index.call_count == 1
        document = raw_client.index.call_args.kwargs['body']
        assert document['tags'] == ['work']
        assert document['created_at'] == WHEN.isoformat()

    def test_add_episodic_memory_failure_means_not_created(self, store, raw_client):
        raw_client.index.side_effect = OpenSearchConnectionError('N/A', 'unreachable', None)
        entry = EpisodicMemoryEntry(user_id='u', summary='s', raw_text='r', tags=[], created_at=WHEN)
        assert store.add_episodic_memory(entry) is None

    def test_add_embeddings_bulk(self, store, raw_client):
        records = [
            MemoryEmbedding(user_id='u', source_type=MemorySourceType.CHAT, content='msg', embedding=[0.1], created_at=WHEN),
            MemoryEmbedding(user_id='u', source_type=MemorySourceType.EPISODIC, source_id='ep-1', content='sum',
                            embedding=[0.2], created_at=WHEN),
        ]
        with patch('memory_engine.utils.opensearch_client.helpers.bulk', return_value=(2, [])) as bulk:
            assert store.add_embeddings(records) == 2

        actions = bulk.call_args.args[1]
        assert [a['_index'] for a in actions] == ['test_memory_embeddings'] * 2
        assert actions[0]['_source']['source_type'] == 'chat'
        assert actions[0]['_source']['source_id'] is None
        assert actions[1]['_source']['source_type'] == 'episodic'
        assert actions[1]['_source']['source_id'] == 'ep-1'

    def test_add_embeddings_empty_makes_no_call(self, store):
        with patch('memory_engine.utils.opensearch_client.helpers.bulk') as bulk:
            assert store.add_embeddings([]) == 0
        bulk.assert_not_called()

    def test_add_embeddings_failure_is_swallowed(self, store):
        record = MemoryEmbedding(user_id='u', source_type=MemorySourceType.CHAT, content='m', embedding=[0.1],
                                 created_at=WHEN)
        with patch('memory_engine.utils.opensearch_client.helpers.bulk', side_effect=RuntimeError('boom')):
            assert store.add_embeddings([record]) == 0

    def test_update_long_term_summary_replaces_field(self, store, raw_client):
        raw_client.update.return_value = {'result': 'updated'}
        assert store.update_long_term_summary('a@example.com', '- one\n- two') is True
        kwargs = raw_client.update.call_args.kwargs
        assert kwargs['index'] == 'test_users'
        assert kwargs['id'] == 'a@example.com'
        assert kwargs['body'] == {'doc': {'long_term_memory': '- one\n- two'}}

    def test_update_failure_is_swallowed(self, store, raw_client):
        raw_client.update.side_effect = RuntimeError('boom')
        assert store.update_long_term_summary('a@example.com', 'x') is False

    def test_save_last_exchange(self, store, raw_client):
        raw_client.update.return_value = {'result': 'updated'}
        assert store.save_last_exchange('a@example.com', 'q', 'a') is True
        fields = raw_client.update.call_args.kwargs['body']['doc']
        assert fields['last_question'] == 'q'
        assert fields['last_response'] == 'a'
        assert 'last_interaction' in fields


class TestGetUser:
    def test_found(self, store, raw_client):
        raw_client.get.return_value = {'found': True, '_source': {'id': 'user-1', 'long_term_memory': '- likes tea',
                                                                  'weekly_goal': None}}
        user = store.get_user('a@example.com')
        assert user.id == 'user-1'
        assert user.email == 'a@example.com'
        assert user.long_term_memory == '- likes tea'
        assert user.weekly_goal == ''

    def test_missing(self, store, raw_client):
        raw_client.get.side_effect = NotFoundError(404, 'not_found', {})
        assert store.get_user('nobody@example.com') is None

    def test_store_failure(self, store, raw_client):
        raw_client.get.side_effect = RuntimeError('boom')
        assert store.get_user('a@example.com') is None


class TestEnsureIndexes:
    def test_creates_missing_indexes(self, store, raw_client):
        raw_client.indices.exists.return_value = False
        raw_client.indices.create.return_value = {'acknowledged': True}

        store.ensure_indexes()

        created = [c.kwargs['index'] for c in raw_client.indices.create.call_args_list]
        assert created == [f'test_{kind}' for kind in INDEX_PROPERTIES]

    def test_embedding_vectors_are_not_indexed(self):
        assert INDEX_PROPERTIES['memory_embeddings']['embedding'] == {'type': 'float', 'index': False}


class TestOpenSearchClientErrors:
    def test_index_error_is_wrapped(self, opensearch_config, raw_client):
        raw_client.index.side_effect = OpenSearchConnectionError('N/A', 'unreachable', None)
        client = OpenSearchClient(opensearch_config, client=raw_client)
        with pytest.raises(OpenSearchError):
            client.index_document('idx', {'a': 1})

    def test_update_missing_document_is_false(self, opensearch_config, raw_client):
        raw_client.update.side_effect = NotFoundError(404, 'document_missing_exception', {})
        client = OpenSearchClient(opensearch_config, client=raw_client)
        assert client.update_document('idx', 'missing', {'a': 1}) is False

"""
Shared pytest fixtures.

No test talks to AWS: boto3 sessions are MagicMocks and the store is either
a MagicMock or the in-memory FakeOpenSearch below.
"""

from __future__ import annotations

import io
import itertools
import json
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from memory_engine.utils.config import (BedrockEmbedConfig, BedrockLLMConfig, ChatConfig, MemoryConfig,
                                        OpenSearchConfig)


# ── Config ────────────────────────────────────────────────────────────

@pytest.fixture
def memory_config() -> MemoryConfig:
    return MemoryConfig(similarity_threshold=0.65,
                        retrieval_top_k=5,
                        embedding_window=200,
                        recent_memory_limit=5,
                        min_reply_length=40,
                        last_conversation_max_chars=500,
                        background_workers=2)


@pytest.fixture
def chat_config() -> ChatConfig:
    return ChatConfig(provider_mode='hybrid', assistant_name='Companion')


@pytest.fixture
def embed_config() -> BedrockEmbedConfig:
    return BedrockEmbedConfig(region='us-east-1', model_id='amazon.titan-embed-text-v2:0', dimension=3)


@pytest.fixture
def llm_config() -> BedrockLLMConfig:
    return BedrockLLMConfig(region='us-east-1',
                            model_id='anthropic.claude-test',
                            max_tokens=256,
                            temperature=0.8,
                            retry_attempts=1,
                            retry_delay=0.0)


@pytest.fixture
def opensearch_config() -> OpenSearchConfig:
    return OpenSearchConfig(endpoint='https://example.aoss.amazonaws.com',
                            port=443,
                            region='us-east-1',
                            service='aoss',
                            index_prefix='test')


# ── boto3 helpers ─────────────────────────────────────────────────────

def make_session(runtime: Optional[MagicMock] = None, credentials: Any = 'creds') -> MagicMock:
    """boto3.Session stand-in; credentials=None simulates a missing credential."""
    session = MagicMock()
    session.get_credentials.return_value = credentials
    session.client.return_value = runtime if runtime is not None else MagicMock()
    return session


def invoke_body(payload: Any) -> Dict[str, Any]:
    """invoke_model response whose body stream yields payload as JSON."""
    raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return {'body': io.BytesIO(raw)}


def converse_stream(text: str) -> Dict[str, Any]:
    """converse_stream response that streams text in two chunks."""
    half = len(text) // 2
    return {
        'stream': [
            {'contentBlockDelta': {'delta': {'text': text[:half]}}},
            {'contentBlockDelta': {'delta': {'text': text[half:]}}},
            {'metadata': {'usage': {'inputTokens': 10, 'outputTokens': 5}, 'metrics': {'latencyMs': 42}}},
        ]
    }


# ── In-memory store ───────────────────────────────────────────────────

class FakeOpenSearch:
    """Dict-backed stand-in for OpenSearchClient with the same method surface."""

    def __init__(self, prefix: str = 'test'):
        self.prefix = prefix
        self.indexes: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._ids = itertools.count(1)

    def index_name(self, kind: str) -> str:
        return f'{self.prefix}_{kind}'

    def docs(self, kind: str) -> List[Dict[str, Any]]:
        return list(self.indexes.get(self.index_name(kind), {}).values())

    def create_index_if_not_exists(self, index_name: str, properties: Dict[str, Any]) -> str:
        if index_name in self.indexes:
            return 'exists'
        self.indexes[index_name] = {}
        return 'created'

    def index_document(self, index_name: str, document: Dict[str, Any], doc_id: Optional[str] = None) -> str:
        doc_id = doc_id or f'doc-{next(self._ids)}'
        self.indexes.setdefault(index_name, {})[doc_id] = dict(document)
        return doc_id

    def bulk_index(self, index_name: str, documents: List[Dict[str, Any]]) -> int:
        for document in documents:
            self.index_document(index_name, document)
        return len(documents)

    def recent_documents(self, index_name: str, user_id: str, size: int, fields=None) -> List[Dict[str, Any]]:
        owned = [doc for doc in self.indexes.get(index_name, {}).values() if doc.get('user_id') == user_id]
        # Newest insert first among equal timestamps
        newest = sorted(reversed(owned), key=lambda doc: doc.get('created_at', ''), reverse=True)[:size]
        if fields is None:
            return newest
        return [{key: doc[key] for key in fields if key in doc} for doc in newest]

    def get_document(self, index_name: str, doc_id: str) -> Optional[Dict[str, Any]]:
        doc = self.indexes.get(index_name, {}).get(doc_id)
        return dict(doc) if doc is not None else None

    def update_document(self, index_name: str, doc_id: str, fields: Dict[str, Any]) -> bool:
        doc = self.indexes.get(index_name, {}).get(doc_id)
        if doc is None:
            return False
        doc.update(fields)
        return True


@pytest.fixture
def fake_opensearch() -> FakeOpenSearch:
    return FakeOpenSearch()

"""
Memory store adapter: record shapes and query patterns over OpenSearch.

Reads that fail come back empty and writes that fail are logged and
reported as False/None, so the chat reply never waits on store health.
"""

from typing import Any, Dict, List, Optional, Tuple

from ..models.core import EpisodicMemoryEntry, LongTermMemoryEntry, MemoryEmbedding, UserProfile
from ..utils.config import MemoryConfig, config
from ..utils.logging_config import get_logger
from ..utils.opensearch_client import OpenSearchClient
from ..utils.timestamp_utils import to_iso, utc_now

logger = get_logger(__name__)

USERS = 'users'
LONG_TERM_MEMORIES = 'long_term_memories'
EPISODIC_MEMORIES = 'episodic_memories'
MEMORY_EMBEDDINGS = 'memory_embeddings'

# Vectors are kept as plain source arrays and never indexed: retrieval is a
# brute-force scan over a recency window.
INDEX_PROPERTIES: Dict[str, Dict[str, Any]] = {
    USERS: {
        'id': {'type': 'keyword'},
        'email': {'type': 'keyword'},
        'long_term_memory': {'type': 'text', 'index': False},
        'preferred_mode': {'type': 'keyword'},
        'weekly_goal': {'type': 'text', 'index': False},
        'last_question': {'type': 'text', 'index': False},
        'last_response': {'type': 'text', 'index': False},
        'last_interaction': {'type': 'date'},
    },
    LONG_TERM_MEMORIES: {
        'user_id': {'type': 'keyword'},
        'content': {'type': 'text'},
        'created_at': {'type': 'date'},
    },
    EPISODIC_MEMORIES: {
        'user_id': {'type': 'keyword'},
        'summary': {'type': 'text'},
        'raw_text': {'type': 'text', 'index': False},
        'tags': {'type': 'keyword'},
        'created_at': {'type': 'date'},
    },
    MEMORY_EMBEDDINGS: {
        'user_id': {'type': 'keyword'},
        'source_type': {'type': 'keyword'},
        'source_id': {'type': 'keyword'},
        'content': {'type': 'text', 'index': False},
        'embedding': {'type': 'float', 'index': False},
        'created_at': {'type': 'date'},
    },
}


class MemoryStore:
    """Per-user memory records in four OpenSearch indexes."""

    def __init__(self, opensearch: Optional[OpenSearchClient] = None, memory_config: Optional[MemoryConfig] = None):
        self.opensearch = opensearch or OpenSearchClient(config.opensearch)
        self.memory_config = memory_config or config.memory

    def _index(self, kind: str) -> str:
        return self.opensearch.index_name(kind)

    def ensure_indexes(self) -> None:
        """Create any missing index with its mappings."""
        for kind, properties in INDEX_PROPERTIES.items():
            try:
                self.opensearch.create_index_if_not_exists(self._index(kind), properties)
            except Exception as e:
                logger.warning(f'Failed to create index for {kind}: {e}')

    # Reads

    def get_user(self, email: str) -> Optional[UserProfile]:
        """Load the user record stored under this email, None if missing or unreadable."""
        try:
            doc = self.opensearch.get_document(self._index(USERS), email)
        except Exception as e:
            logger.error(f'Failed to load user {email}: {e}')
            return None

        if doc is None:
            return None

        return UserProfile(email=email,
                           id=doc.get('id') or None,
                           long_term_memory=doc.get('long_term_memory') or '',
                           preferred_mode=doc.get('preferred_mode') or '',
                           weekly_goal=doc.get('weekly_goal') or '',
                           last_question=doc.get('last_question') or '',
                           last_response=doc.get('last_response') or '')

    def recent_embeddings(self, user_id: str, limit: Optional[int] = None) -> List[Tuple[str, List[float]]]:
        """Most recent (content, vector) pairs for a user, newest first.

        Only the newest `limit` records (200 by default) are ever considered;
        older embeddings fall out of retrieval entirely.
        """
        limit = limit or self.memory_config.embedding_window
        try:
            docs = self.opensearch.recent_documents(self._index(MEMORY_EMBEDDINGS),
                                                    user_id,
                                                    size=limit,
                                                    fields=['content', 'embedding'])
        except Exception as e:
            logger.error(f'Failed to load embeddings for user {user_id}: {e}')
            return []

        return [(doc.get('content', ''), doc.get('embedding')) for doc in docs]

    def recent_long_term_memories(self, user_id: str, limit: Optional[int] = None) -> List[str]:
        """Contents of the newest long-term memory entries, newest first."""
        limit = limit or self.memory_config.recent_memory_limit
        try:
            docs = self.opensearch.recent_documents(self._index(LONG_TERM_MEMORIES), user_id, size=limit, fields=['content'])
        except Exception as e:
            logger.error(f'Failed to load long-term memories for user {user_id}: {e}')
            return []

        return [doc['content'] for doc in docs if doc.get('content')]

    # Writes

    def add_long_term_memory(self, user_id: str, content: str) -> bool:
        entry = LongTermMemoryEntry(user_id=user_id, content=content, created_at=utc_now())
        document = {'user_id': entry.user_id, 'content': entry.content, 'created_at': to_iso(entry.created_at)}
        try:
            return self.opensearch.index_document(self._index(LONG_TERM_MEMORIES), document) is not None
        except Exception as e:
            logger.error(f'Failed to store long-term memory for user {user_id}: {e}')
            return False

    def add_episodic_memory(self, entry: EpisodicMemoryEntry) -> Optional[str]:
        """Insert an episodic entry and return the id the store assigned.

        None means the entry must be treated as not created.
        """
        document = {
            'user_id': entry.user_id,
            'summary': entry.summary,
            'raw_text': entry.raw_text,
            'tags': list(entry.tags),
            'created_at': to_iso(entry.created_at),
        }
        try:
            return self.opensearch.index_document(self._index(EPISODIC_MEMORIES), document)
        except Exception as e:
            logger.error(f'Failed to store episodic memory for user {entry.user_id}: {e}')
            return None

    def add_embeddings(self, records: List[MemoryEmbedding]) -> int:
        """Bulk insert embedding records; returns how many were stored."""
        if not records:
            return 0

        documents = [{
            'user_id': record.user_id,
            'source_type': record.source_type.value,
            'source_id': record.source_id,
            'content': record.content,
            'embedding': list(record.embedding),
            'created_at': to_iso(record.created_at),
        } for record in records]
        try:
            return self.opensearch.bulk_index(self._index(MEMORY_EMBEDDINGS), documents)
        except Exception as e:
            logger.error(f'Failed to store {len(records)} embeddings: {e}')
            return 0

    def update_long_term_summary(self, email: str, summary: str) -> bool:
        """Replace the user's narrative summary. Concurrent writers: last write wins."""
        try:
            return self.opensearch.update_document(self._index(USERS), email, {'long_term_memory': summary})
        except Exception as e:
            logger.error(f'Failed to update long-term summary for {email}: {e}')
            return False

    def save_last_exchange(self, email: str, question: str, answer: str) -> bool:
        fields = {'last_question': question, 'last_response': answer, 'last_interaction': to_iso()}
        try:
            return self.opensearch.update_document(self._index(USERS), email, fields)
        except Exception as e:
            logger.error(f'Failed to save last exchange for {email}: {e}')
            return False

"""
Retrieval of prior memories relevant to a new message.
"""

from typing import List, Optional

from ..models.core import ScoredMemory
from ..utils.bedrock_embed import BedrockEmbed
from ..utils.config import MemoryConfig, config
from ..utils.logging_config import get_logger
from .memory_store import MemoryStore
from .similarity import rank

logger = get_logger(__name__)


class RetrievalService:
    """Embed a query, scan the user's recent embeddings and keep the closest."""

    def __init__(self,
                 store: Optional[MemoryStore] = None,
                 embed: Optional[BedrockEmbed] = None,
                 memory_config: Optional[MemoryConfig] = None):
        self.store = store or MemoryStore()
        self.embed = embed or BedrockEmbed(config.bedrock_embed)
        self.memory_config = memory_config or config.memory

    def search(self, user_id: Optional[str], query_text: str) -> List[ScoredMemory]:
        """
        Rank the user's stored memories against a query.

        Args:
            user_id: Owner of the memories, may be absent
            query_text: New user message

        Returns:
            Up to top_k memories above the similarity threshold, best first
        """
        if not user_id or not query_text or not query_text.strip():
            return []

        query_vector = self.embed.embed(query_text, is_query=True)
        if query_vector is None:
            logger.debug('No query embedding, skipping memory retrieval')
            return []

        candidates = self.store.recent_embeddings(user_id, self.memory_config.embedding_window)
        if not candidates:
            return []

        results = rank(query_vector,
                       candidates,
                       threshold=self.memory_config.similarity_threshold,
                       top_k=self.memory_config.retrieval_top_k)
        logger.debug(f'Retrieved {len(results)} of {len(candidates)} memories for user {user_id}')
        return results

    def retrieve(self, user_id: Optional[str], query_text: str) -> str:
        """
        Format relevant memories as a bulleted block for the system prompt.

        Never raises: any failure means no additional context.

        Returns:
            Newline-joined '- <content>' lines, or '' when nothing is relevant
        """
        try:
            results = self.search(user_id, query_text)
        except Exception as e:
            logger.error(f'Memory retrieval failed: {e}')
            return ''

        return '\n'.join(f'- {memory.content}' for memory in results)

"""
Memory consolidation: turning a finished exchange into durable memory records.
"""

from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import List, Optional

from ..models.core import EpisodicMemoryEntry, MemoryEmbedding, MemorySourceType
from ..utils.background import BackgroundTaskRunner
from ..utils.bedrock_embed import BedrockEmbed
from ..utils.config import ChatConfig, MemoryConfig, config
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import utc_now
from .memory_extraction import MemoryExtractionService
from .memory_store import MemoryStore

logger = get_logger(__name__)


def build_embedding_batch(user_id: str,
                          user_message: str,
                          user_embedding: Optional[List[float]],
                          summary: str,
                          summary_embedding: Optional[List[float]],
                          episode_id: Optional[str],
                          created_at: Optional[datetime] = None) -> List[MemoryEmbedding]:
    """Embedding records to insert for one consolidated exchange.

    The user message record is included when its embedding exists. The
    summary record also needs the id of the stored episodic entry it points to.
    """
    created_at = created_at or utc_now()
    batch: List[MemoryEmbedding] = []

    if user_embedding:
        batch.append(
            MemoryEmbedding(user_id=user_id,
                            source_type=MemorySourceType.CHAT,
                            source_id=None,
                            content=user_message,
                            embedding=user_embedding,
                            created_at=created_at))

    if episode_id and summary_embedding:
        batch.append(
            MemoryEmbedding(user_id=user_id,
                            source_type=MemorySourceType.EPISODIC,
                            source_id=episode_id,
                            content=summary,
                            embedding=summary_embedding,
                            created_at=created_at))

    return batch


class MemoryConsolidationService:
    """Record insights, episodes and embeddings after a reply has been sent."""

    def __init__(self,
                 store: Optional[MemoryStore] = None,
                 extraction: Optional[MemoryExtractionService] = None,
                 embed: Optional[BedrockEmbed] = None,
                 runner: Optional[BackgroundTaskRunner] = None,
                 memory_config: Optional[MemoryConfig] = None,
                 chat_config: Optional[ChatConfig] = None):
        """Initialize the consolidation service."""
        self.store = store or MemoryStore()
        self.extraction = extraction or MemoryExtractionService()
        self.embed = embed or BedrockEmbed(config.bedrock_embed)
        self.memory_config = memory_config or config.memory
        self.runner = runner or BackgroundTaskRunner(max_workers=self.memory_config.background_workers)
        self.chat_config = chat_config or config.chat

        # Own pool with two slots per consolidation worker
        self.embed_pool = ThreadPoolExecutor(max_workers=2 * self.memory_config.background_workers,
                                             thread_name_prefix='memory-embed')

        logger.info('Initialized MemoryConsolidationService')

    def submit(self,
               user_id: Optional[str],
               user_name: str,
               email: str,
               prior_summary: str,
               user_message: str,
               ai_message: str) -> Future:
        """Start consolidation in the background and return without waiting."""
        return self.runner.submit('consolidate', self.consolidate, user_id, user_name, email, prior_summary, user_message,
                                  ai_message)

    def consolidate(self,
                    user_id: Optional[str],
                    user_name: str,
                    email: str,
                    prior_summary: str,
                    user_message: str,
                    ai_message: str) -> None:
        """
        Record one completed exchange.

        Args:
            user_id: Owner id, memory entries are only written when known
            user_name: User display name
            email: Key of the user record holding the narrative summary
            prior_summary: Narrative summary before this exchange
            user_message: Latest user message
            ai_message: Assistant reply sent to the user
        """
        try:
            self._record_insight(user_id, user_name, email, prior_summary, user_message, ai_message)
            if user_id:
                self._record_episode(user_id, user_name, user_message, ai_message)
        except Exception as e:
            logger.error(f'Memory consolidation failed for {email}: {e}')

    def _record_insight(self, user_id: Optional[str], user_name: str, email: str, prior_summary: str, user_message: str,
                        ai_message: str) -> None:
        insight = self.extraction.extract_insight(user_name, prior_summary, user_message, ai_message)
        if not insight:
            logger.debug('No insight extracted')
            return

        updated_summary = f'{prior_summary}\n{insight}' if prior_summary else insight
        if email:
            self.store.update_long_term_summary(email, updated_summary)

        if user_id:
            self.store.add_long_term_memory(user_id, insight)

    def _record_episode(self, user_id: str, user_name: str, user_message: str, ai_message: str) -> None:
        episode = self.extraction.extract_episode(user_name, user_message, ai_message)
        if episode is None:
            logger.debug('No episode extracted')
            return

        entry = EpisodicMemoryEntry(user_id=user_id,
                                    summary=episode.summary,
                                    raw_text=f'{user_name}: {user_message}\n{self.chat_config.assistant_name}: {ai_message}',
                                    tags=episode.tags,
                                    created_at=utc_now())
        episode_id = self.store.add_episodic_memory(entry)

        user_future = self.embed_pool.submit(self.embed.embed, user_message)
        summary_future = self.embed_pool.submit(self.embed.embed, episode.summary)
        wait([user_future, summary_future])

        batch = build_embedding_batch(user_id=user_id,
                                      user_message=user_message,
                                      user_embedding=self._vector_or_none(user_future),
                                      summary=episode.summary,
                                      summary_embedding=self._vector_or_none(summary_future),
                                      episode_id=episode_id)
        if batch:
            stored = self.store.add_embeddings(batch)
            logger.debug(f'Stored {stored} embeddings for user {user_id}')

    @staticmethod
    def _vector_or_none(future: Future) -> Optional[List[float]]:
        error = future.exception()
        if error is not None:
            logger.error(f'Embedding task failed: {error!r}')
            return None
        return future.result()

    def shutdown(self, wait_for_tasks: bool = True) -> None:
        """Stop accepting work; optionally drain pending consolidations."""
        self.runner.shutdown(wait=wait_for_tasks)
        self.embed_pool.shutdown(wait=wait_for_tasks)

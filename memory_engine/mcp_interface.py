"""
MCP Interface Layer using fastmcp: the chat entry point of the memory engine.
"""
from typing import Dict, List, Optional, Tuple

from fastmcp import FastMCP

from memory_engine.services.chat_service import ChatService
from memory_engine.utils.config import config
from memory_engine.utils.health_check import get_health_status
from memory_engine.utils.logging_config import get_logger

logger = get_logger(__name__)

# Initialize FastMCP application
mcp = FastMCP('Life Memory')
chat_service = ChatService()
chat_service.store.ensure_indexes()


@mcp.tool()
def chat(name: str, email: str, messages: List[Dict[str, str]], mode: Optional[str] = None) -> Dict[str, object]:
    """Answer the latest message with the user's memories in context.

    Args:
        name: User display name
        email: User identity
        messages: Role-tagged messages ({'role', 'content'}), oldest first
        mode: Optional conversation mode (morning, stuck, sad, success)

    Returns:
        {'message': reply or failure text, 'ok': whether a reply was produced}
    """
    try:
        result = chat_service.reply(name, email, messages, mode)
    except Exception as e:
        logger.error(f'Unexpected error in MCP chat: {e}')
        return {'message': 'Internal error, please try again later.', 'ok': False}

    return {'message': result.message, 'ok': result.ok}


@mcp.tool()
def search_memories(user_id: str, query: str) -> List[Tuple[str, float]]:
    """Search a user's memories by similarity.

    Args:
        user_id: User ID
        query: Natural language query

    Returns:
        List of tuples (content, score), best first
    """
    if not user_id or not user_id.strip():
        raise ValueError('User ID is required')

    results = chat_service.retrieval.search(user_id, query)
    logger.debug(f'MCP search returned {len(results)} memories for user {user_id}')
    return [(memory.content, memory.score) for memory in results]


@mcp.tool()
def health() -> Dict[str, object]:
    """Report the health of the model, embedding and store backends."""
    return get_health_status()


if __name__ == '__main__':
    transport = config.mcp.transport
    host = config.mcp.host
    port = config.mcp.port
    mcp.run(transport=transport, host=host, port=port)

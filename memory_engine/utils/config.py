"""
Configuration management for AWS services and memory engine settings.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class BedrockLLMConfig:
    """Configuration for one Amazon Bedrock chat model."""
    region: str
    model_id: str
    max_tokens: int
    temperature: float
    retry_attempts: int
    retry_delay: float


@dataclass(frozen=True)
class BedrockEmbedConfig:
    """Configuration for Amazon Bedrock Embed service."""
    region: str
    model_id: str
    dimension: int


@dataclass(frozen=True)
class OpenSearchConfig:
    """Configuration for the OpenSearch memory store."""
    endpoint: str
    port: int
    region: str
    service: str
    index_prefix: str


@dataclass(frozen=True)
class MemoryConfig:
    """Configuration for memory retrieval and consolidation."""
    similarity_threshold: float
    retrieval_top_k: int
    embedding_window: int
    recent_memory_limit: int
    min_reply_length: int
    last_conversation_max_chars: int
    background_workers: int


@dataclass(frozen=True)
class ChatConfig:
    """Configuration for the chat orchestrator."""
    provider_mode: str
    assistant_name: str


@dataclass(frozen=True)
class MCPConfig:
    """Configuration for MCP interface."""
    transport: str
    host: str
    port: int


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    environment: str
    log_level: str
    bedrock_llm: BedrockLLMConfig
    bedrock_fallback_llm: BedrockLLMConfig
    bedrock_summarizer_llm: BedrockLLMConfig
    bedrock_embed: BedrockEmbedConfig
    opensearch: OpenSearchConfig
    memory: MemoryConfig
    chat: ChatConfig
    mcp: MCPConfig


PROVIDER_MODES = ('primary', 'fallback', 'hybrid')


def _load_llm_config(prefix: str, default_model_id: str, default_temperature: str) -> BedrockLLMConfig:
    """Read one Bedrock chat model block, e.g. BEDROCK_LLM_MODEL_ID."""
    return BedrockLLMConfig(region=os.getenv(f'{prefix}_AWS_REGION', 'us-east-1'),
                            model_id=os.getenv(f'{prefix}_MODEL_ID', default_model_id),
                            max_tokens=int(os.getenv(f'{prefix}_MAX_TOKENS', '1024')),
                            temperature=float(os.getenv(f'{prefix}_TEMPERATURE', default_temperature)),
                            retry_attempts=int(os.getenv(f'{prefix}_RETRY_ATTEMPTS', '1')),
                            retry_delay=float(os.getenv(f'{prefix}_RETRY_DELAY', '1.0')))


def load_config() -> AppConfig:
    """Load configuration from environment variables with defaults."""
    environment = os.getenv('ENVIRONMENT', 'development')

    # Bedrock chat models: main reply, fallback reply, memory summarizer
    bedrock_llm_config = _load_llm_config('BEDROCK_LLM', 'anthropic.claude-3-5-haiku-20241022-v1:0', '0.8')
    bedrock_fallback_llm_config = _load_llm_config('BEDROCK_FALLBACK_LLM', 'amazon.nova-lite-v1:0', '0.8')
    bedrock_summarizer_llm_config = _load_llm_config('BEDROCK_SUMMARIZER_LLM', 'amazon.nova-micro-v1:0', '0.2')

    # Bedrock Embed configuration
    bedrock_embed_config = BedrockEmbedConfig(region=os.getenv('BEDROCK_EMBED_AWS_REGION', 'us-east-1'),
                                              model_id=os.getenv('BEDROCK_EMBED_MODEL_ID', 'amazon.titan-embed-text-v2:0'),
                                              dimension=int(os.getenv('BEDROCK_EMBED_DIMENSION', '1024')))

    # Memory store configuration
    opensearch_config = OpenSearchConfig(endpoint=os.getenv('OPENSEARCH_ENDPOINT', 'localhost'),
                                         port=int(os.getenv('OPENSEARCH_PORT', '443')),
                                         region=os.getenv('OPENSEARCH_AWS_REGION', 'us-east-1'),
                                         service=os.getenv('OPENSEARCH_SERVICE', 'aoss'),
                                         index_prefix=os.getenv('OPENSEARCH_INDEX_PREFIX', 'life_memory'))

    # Memory configuration
    memory_config = MemoryConfig(similarity_threshold=float(os.getenv('MEMORY_SIMILARITY_THRESHOLD', '0.65')),
                                 retrieval_top_k=int(os.getenv('MEMORY_RETRIEVAL_TOP_K', '5')),
                                 embedding_window=int(os.getenv('MEMORY_EMBEDDING_WINDOW', '200')),
                                 recent_memory_limit=int(os.getenv('MEMORY_RECENT_LIMIT', '5')),
                                 min_reply_length=int(os.getenv('MEMORY_MIN_REPLY_LENGTH', '40')),
                                 last_conversation_max_chars=int(os.getenv('MEMORY_LAST_CONVERSATION_MAX_CHARS', '500')),
                                 background_workers=int(os.getenv('MEMORY_BACKGROUND_WORKERS', '4')))

    provider_mode = os.getenv('AI_PROVIDER', 'hybrid').lower()
    if provider_mode not in PROVIDER_MODES:
        provider_mode = 'hybrid'

    chat_config = ChatConfig(provider_mode=provider_mode, assistant_name=os.getenv('ASSISTANT_NAME', 'Companion'))

    # MCP configuration
    mcp_config = MCPConfig(transport=os.getenv('MCP_TRANSPORT', 'sse'),
                           host=os.getenv('MCP_HOST', '127.0.0.1'),
                           port=int(os.getenv('MCP_PORT', '8000')))

    return AppConfig(environment=environment,
                     log_level=os.getenv('LOG_LEVEL', 'INFO'),
                     bedrock_llm=bedrock_llm_config,
                     bedrock_fallback_llm=bedrock_fallback_llm_config,
                     bedrock_summarizer_llm=bedrock_summarizer_llm_config,
                     bedrock_embed=bedrock_embed_config,
                     opensearch=opensearch_config,
                     memory=memory_config,
                     chat=chat_config,
                     mcp=mcp_config)


# Global configuration instance
config = load_config()

"""
Health check utilities for the memory engine.
"""

from typing import Any, Dict

from .bedrock_embed import BedrockEmbed
from .bedrock_llm import BedrockLLM
from .config import config
from .logging_config import get_logger
from .opensearch_client import OpenSearchClient

logger = get_logger(__name__)


def get_health_status() -> Dict[str, Any]:
    """Get detailed health status of all components.

    Returns:
        Dictionary with health status of each component
    """
    health_status = {}

    for key, llm_config in (('bedrock_llm', config.bedrock_llm), ('bedrock_fallback_llm', config.bedrock_fallback_llm)):
        try:
            llm = BedrockLLM(llm_config)
            health_status[key] = {'healthy': llm.health_check(), 'service': 'Amazon Bedrock LLM', 'model': llm_config.model_id}
        except Exception as e:
            health_status[key] = {'healthy': False, 'service': 'Amazon Bedrock LLM', 'error': str(e)}

    try:
        embed = BedrockEmbed(config.bedrock_embed)
        health_status['bedrock_embed'] = {
            'healthy': embed.health_check(),
            'service': 'Amazon Bedrock Embed',
            'model': config.bedrock_embed.model_id
        }
    except Exception as e:
        health_status['bedrock_embed'] = {'healthy': False, 'service': 'Amazon Bedrock Embed', 'error': str(e)}

    try:
        opensearch = OpenSearchClient(config.opensearch)
        health_status['opensearch'] = {
            'healthy': opensearch.health_check(),
            'service': 'Amazon OpenSearch',
            'endpoint': config.opensearch.endpoint
        }
    except Exception as e:
        health_status['opensearch'] = {'healthy': False, 'service': 'Amazon OpenSearch', 'error': str(e)}

    unhealthy = [key for key, status in health_status.items() if not status.get('healthy', False)]
    if unhealthy:
        logger.warning(f'Unhealthy components: {", ".join(unhealthy)}')
    else:
        logger.info('All system components are healthy')

    return health_status

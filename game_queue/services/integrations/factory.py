from loguru import logger

from game_queue.app_config import get_app_environ_config

from .chat_gateway import ChatGatewayClient
from .chat_platform import ChatPlatform
from .demo_platform import DemoChatPlatform

_chat_platform: ChatPlatform | None = None


def get_chat_platform() -> ChatPlatform:
    """Chat platform selected by DEMO_MODE, created on first use."""
    global _chat_platform
    if _chat_platform is None:
        settings = get_app_environ_config()
        if settings.DEMO_MODE:
            logger.info("DEMO_MODE=true: using in-memory chat platform")
            _chat_platform = DemoChatPlatform()
        else:
            logger.info(f"Using chat gateway at {settings.CHAT_GATEWAY_BASE_URL}")
            _chat_platform = ChatGatewayClient(
                base_url=settings.CHAT_GATEWAY_BASE_URL,
                api_key=settings.CHAT_GATEWAY_API_KEY,
            )
    return _chat_platform

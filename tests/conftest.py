import os
import warnings

# Ignore warnings from third-party test plumbing
warnings.filterwarnings("ignore", category=DeprecationWarning, module="httpx.*")

# Set test environment variables before the config singleton is first read
os.environ.update(
    {
        "DEMO_MODE": "true",
        "CHAT_WEBHOOK_API_KEY": "",
        "BOT_USER_ID": "bot",
    }
)

# Shared fixtures available to all tests
from tests.fixtures.session_fixtures import *  # noqa: E402, F403

"""Settings and connection policy for the stable socket client."""

from stablesocket.config.policy import SocketPolicy
from stablesocket.config.settings import SocketSettings, configure_logging, get_settings

__all__ = ["SocketPolicy", "SocketSettings", "configure_logging", "get_settings"]

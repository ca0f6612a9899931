"""External system integrations."""

from onboarding_api.providers.active_directory import ActiveDirectoryProvider
from onboarding_api.providers.base import BaseProvider
from onboarding_api.providers.microsoft_graph import MicrosoftGraphProvider
from onboarding_api.providers.whatsapp import WhatsAppProvider

__all__ = [
    "BaseProvider",
    "ActiveDirectoryProvider",
    "MicrosoftGraphProvider",
    "WhatsAppProvider",
]

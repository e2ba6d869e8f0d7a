"""MailDrain HTTP trigger API."""

from maildrain.api.router import router

__all__ = ["router"]

from __future__ import annotations


class AutoTaggerError(Exception):
    """Base class for errors surfaced to the user."""


class ConfigurationError(AutoTaggerError, ValueError):
    """Invalid or missing configuration: filter regex, template, key, credential."""


class ExternalServiceError(AutoTaggerError):
    """Vocabulary lookup or completion service failure.

    The previous reference set / output stays as it was; the core never retries.
    """

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.message = message

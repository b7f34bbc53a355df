"""Pluggable text-generation backend.

Services depend on ``CompletionClient`` rather than on a concrete provider,
and receive an implementation through their constructor. Production code
uses ``contact_sync.integrations.gemini.GeminiClient``; tests pass a fake.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class CompletionClient(Protocol):
    """Protocol for prompt-in, text-out language model backends."""

    async def complete(self, prompt: str) -> str:
        """Return the model's text completion for ``prompt``.

        Raises:
            ContactSyncException: Provider, transport, or parsing failures.
        """
        ...

"""Publish lifecycle state machine.

Tracks one publish or unpublish invocation through its steps and enforces
valid transitions, so the pipeline cannot, for example, persist a post
before its images were uploaded.
"""

from __future__ import annotations

from notebridge.models import PublishState


class PublishStateMachine:
    """Finite state machine for a single publish invocation.

    Valid transitions::

        SCANNING     -> RESOLVING    | FAILED
        RESOLVING    -> UPLOADING    | FAILED
        UPLOADING    -> PERSISTING   | FAILED
        PERSISTING   -> REVALIDATING | FAILED
        REVALIDATING -> DONE         | FAILED
        DONE         -> (terminal)
        FAILED       -> (terminal)

    Unpublish is the reduced path that starts at ``PERSISTING``.

    Parameters
    ----------
    slug:
        The post being published, for error messages.
    initial:
        Starting state.
    """

    VALID_TRANSITIONS: dict[PublishState, set[PublishState]] = {
        PublishState.SCANNING: {PublishState.RESOLVING, PublishState.FAILED},
        PublishState.RESOLVING: {PublishState.UPLOADING, PublishState.FAILED},
        PublishState.UPLOADING: {PublishState.PERSISTING, PublishState.FAILED},
        PublishState.PERSISTING: {PublishState.REVALIDATING, PublishState.FAILED},
        PublishState.REVALIDATING: {PublishState.DONE, PublishState.FAILED},
        PublishState.DONE: set(),
        PublishState.FAILED: set(),
    }

    def __init__(self, slug: str, initial: PublishState = PublishState.SCANNING) -> None:
        self.slug: str = slug
        self.state: PublishState = initial
        self.failure_reason: str | None = None

    @property
    def is_terminal(self) -> bool:
        return not self.VALID_TRANSITIONS[self.state]

    def transition(self, new_state: PublishState) -> None:
        """Move to *new_state*.

        Raises
        ------
        ValueError
            If the transition from the current state is not allowed.
        """
        allowed = self.VALID_TRANSITIONS.get(self.state, set())
        if new_state not in allowed:
            raise ValueError(
                f"Invalid state transition: {self.state.value} -> {new_state.value} "
                f"for post {self.slug}. "
                f"Allowed transitions from {self.state.value}: "
                f"{{{', '.join(sorted(s.value for s in allowed))}}}"
            )
        self.state = new_state

    def fail(self, reason: str) -> None:
        """Move to ``FAILED`` from any non-terminal state, recording *reason*."""
        self.transition(PublishState.FAILED)
        self.failure_reason = reason

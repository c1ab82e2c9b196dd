"""
Harness error taxonomy

Every error a scenario can end with derives from HarnessError and carries an
ErrorKind plus the diagnostic context (selector, state, expected vs observed)
needed to build a structured ScenarioFailure.
"""

from enum import Enum
from typing import Any, Dict, Optional, Sequence

from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    OBSTRUCTION = 'obstruction'
    PAGE_STATE = 'page_state'
    PRICE_INCONSISTENCY = 'price_inconsistency'
    INVALID_TRANSITION = 'invalid_transition'
    TIMEOUT = 'timeout'
    EMPTY_CART = 'empty_cart'


class ScenarioFailure(BaseModel):
    """Structured failure handed to the test runner"""
    kind: ErrorKind
    message: str
    expected: Optional[str] = None
    observed: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)


class HarnessError(Exception):
    kind: ErrorKind
    retryable = False

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = {key: value for key, value in context.items() if value is not None}

    def to_failure(self) -> ScenarioFailure:
        return ScenarioFailure(kind=self.kind, message=self.message, context=self.context)


class ObstructionError(HarnessError):
    """Obstructions survived every dismissal attempt"""
    kind = ErrorKind.OBSTRUCTION
    retryable = True

    def __init__(self, signatures: Sequence[str], target: Optional[str] = None, attempts: int = 0):
        self.signatures = list(signatures)
        self.target = target
        self.attempts = attempts
        super().__init__(
            f"Obstruction(s) {', '.join(self.signatures)} still block {target or 'the page'} "
            f"after {attempts} attempt(s)",
            signatures=self.signatures, target=target, attempts=attempts,
        )


class PageStateError(HarnessError):
    """A page's ready landmark (or a required element) is absent"""
    kind = ErrorKind.PAGE_STATE

    def __init__(self, page: str, landmark: str, detail: Optional[str] = None):
        self.page = page
        self.landmark = landmark
        message = f"{page}: landmark '{landmark}' not visible"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, page=page, landmark=landmark)


class PriceInconsistencyError(HarnessError):
    """The displayed cart diverges from the independently computed one"""
    kind = ErrorKind.PRICE_INCONSISTENCY

    def __init__(self, scope: str, expected: Any, observed: Any, detail: Optional[str] = None):
        self.scope = scope
        self.expected = expected
        self.observed = observed
        message = f"{scope}: expected {expected}, observed {observed}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, scope=scope)

    def to_failure(self) -> ScenarioFailure:
        return ScenarioFailure(
            kind=self.kind, message=self.message,
            expected=str(self.expected), observed=str(self.observed),
            context=self.context,
        )


class InvalidTransitionError(HarnessError):
    """The flow controller was asked to skip or repeat a step"""
    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, current: Any, event: str, allowed: Sequence[Any] = ()):
        self.current = current
        self.event = event
        self.allowed = list(allowed)
        allowed_text = ', '.join(str(getattr(state, 'value', state)) for state in self.allowed)
        current_text = getattr(current, 'value', current)
        super().__init__(
            f"Cannot '{event}' from {current_text}; allowed from: {allowed_text or 'nowhere'}",
            current=str(current_text), event=event,
        )


class WaitTimeoutError(HarnessError, TimeoutError):
    """A bounded wait ran out; distinct from ObstructionError"""
    kind = ErrorKind.TIMEOUT
    retryable = True

    def __init__(self, description: str, timeout_s: Optional[float] = None, last_value: Any = None):
        self.description = description
        self.timeout_s = timeout_s
        self.last_value = last_value
        bound = f" after {timeout_s:.1f}s" if timeout_s is not None else ""
        super().__init__(
            f"Timed out{bound} waiting for {description}",
            description=description, timeout_s=timeout_s,
        )


class EmptyCartError(HarnessError):
    """Proceeding to checkout with nothing in the cart"""
    kind = ErrorKind.EMPTY_CART

    def __init__(self, state: Any = None):
        state_text = getattr(state, 'value', state)
        super().__init__('Cart is empty; cannot proceed to checkout', state=state_text)

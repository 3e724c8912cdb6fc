"""
Directive dispatch.

Routes the directives of a completed exchange to their handlers: actions by
name (handlers receive the typed action model when the name is part of the
known vocabulary), buttons and file uploads to a single UI presenter.
A failing handler never prevents the remaining directives from running.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Union

from tutor.models.actions import to_typed_action
from tutor.models.directives import ActionDirective, ButtonDirective, FileUploadDirective

logger = logging.getLogger(__name__)

ActionHandler = Callable[[Any], Any]
UIPresenter = Callable[[Union[ButtonDirective, FileUploadDirective]], Any]


@dataclass(frozen=True)
class DispatchFailure:
    directive: str
    error_type: str
    message: str


@dataclass
class DispatchOutcome:
    """What happened to each directive of one exchange."""

    handled: list[str] = field(default_factory=list)
    presented: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failures: list[DispatchFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class DirectiveDispatcher:
    """Registry of action handlers plus an optional UI presenter."""

    def __init__(self, presenter: Optional[UIPresenter] = None):
        self._handlers: dict[str, ActionHandler] = {}
        self.presenter = presenter

    def register(self, action_name: str, handler: ActionHandler) -> None:
        self._handlers[action_name] = handler

    def handler(self, action_name: str) -> Callable[[ActionHandler], ActionHandler]:
        """Decorator form of `register`."""
        def decorator(fn: ActionHandler) -> ActionHandler:
            self.register(action_name, fn)
            return fn
        return decorator

    def has_handler(self, action_name: str) -> bool:
        return action_name in self._handlers

    def dispatch(self, directives: Iterable[Union[ActionDirective, ButtonDirective, FileUploadDirective]]) -> DispatchOutcome:
        """Run every directive in order and report the outcome."""
        outcome = DispatchOutcome()
        for directive in directives:
            if isinstance(directive, ActionDirective):
                self._dispatch_action(directive, outcome)
            else:
                self._present(directive, outcome)

        if outcome.failures or outcome.skipped:
            logger.info(json.dumps({
                "step": "DIRECTIVE_DISPATCH",
                "handled": outcome.handled,
                "presented": outcome.presented,
                "skipped": outcome.skipped,
                "failures": [f.directive for f in outcome.failures],
            }))
        return outcome

    def _dispatch_action(self, directive: ActionDirective, outcome: DispatchOutcome) -> None:
        handler = self._handlers.get(directive.name)
        if handler is None:
            logger.warning(f"No handler for action '{directive.name}', skipping")
            outcome.skipped.append(directive.name)
            return

        try:
            typed = to_typed_action(directive)
            handler(typed if typed is not None else directive)
        except Exception as e:
            logger.error(f"Action '{directive.name}' failed: {e}")
            outcome.failures.append(DispatchFailure(
                directive=directive.name,
                error_type=type(e).__name__,
                message=str(e),
            ))
            return
        outcome.handled.append(directive.name)

    def _present(self, element: Union[ButtonDirective, FileUploadDirective], outcome: DispatchOutcome) -> None:
        label = f"{element.kind}:{element.id}"
        if self.presenter is None:
            outcome.skipped.append(label)
            return
        try:
            self.presenter(element)
        except Exception as e:
            logger.error(f"Presenting {label} failed: {e}")
            outcome.failures.append(DispatchFailure(
                directive=label,
                error_type=type(e).__name__,
                message=str(e),
            ))
            return
        outcome.presented.append(label)

"""Bounded linear history of evaluation steps with snapshot diffing."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from live_eval.extract.models import SourceRange
from live_eval.history.models import (
    BindingSnapshot,
    ContextSnapshot,
    ExecutionStep,
    HistoryState,
    VariableHistoryEntry,
)
from live_eval.history.values import (
    UNDEFINED,
    CapturedValue,
    capture_value,
    value_type,
    values_equal,
)
from live_eval.logging.audit import utc_timestamp
from live_eval.sandbox.evaluator import CAPABILITY_NAMES, ExecutionContext

DEFAULT_HISTORY_CAPACITY = 100


class HistoryStore:
    """Record steps, navigate them like undo/redo, and report binding changes.

    Recording while the cursor is behind the newest step discards every step
    after the cursor before appending. Appending past capacity evicts the
    oldest step.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be >= 1.")
        self._state = HistoryState(capacity=capacity)
        self._previous_snapshot: ContextSnapshot | None = None
        self._step_counter = 0

    @property
    def capacity(self) -> int:
        return self._state.capacity

    def __len__(self) -> int:
        return len(self._state.steps)

    def record_step(
        self,
        unit_text: str,
        unit_range: SourceRange,
        result: object,
        context: ExecutionContext | Mapping[str, object],
        error: str | None = None,
    ) -> ExecutionStep:
        """Snapshot the context after one unit and append the step."""
        variables = {name: capture_value(value) for name, value in _visible_bindings(context)}
        snapshot = ContextSnapshot.from_items(variables)
        bindings = tuple(
            BindingSnapshot(
                name=name,
                value=value,
                type=value_type(value),
                changed=self._binding_changed(name, value),
            )
            for name, value in variables.items()
        )
        step = ExecutionStep(
            id=self._next_step_id(),
            timestamp=utc_timestamp(),
            unit_text=unit_text,
            unit_range=unit_range,
            result=UNDEFINED if error is not None else capture_value(result),
            error=error,
            bindings=bindings,
            context_snapshot=snapshot,
        )
        self._append(step)
        self._previous_snapshot = snapshot
        return step

    def step_back(self) -> ExecutionStep | None:
        if not self.can_step_back():
            return None
        self._state.current_index -= 1
        return self._state.steps[self._state.current_index]

    def step_forward(self) -> ExecutionStep | None:
        if not self.can_step_forward():
            return None
        self._state.current_index += 1
        return self._state.steps[self._state.current_index]

    def go_to_step(self, index: int) -> ExecutionStep | None:
        """Move the cursor to `index`; out-of-range leaves the cursor unchanged."""
        if index < 0 or index >= len(self._state.steps):
            return None
        self._state.current_index = index
        return self._state.steps[index]

    def can_step_back(self) -> bool:
        return self._state.current_index > 0

    def can_step_forward(self) -> bool:
        return self._state.current_index < len(self._state.steps) - 1

    def current_step(self) -> ExecutionStep | None:
        if self._state.current_index < 0:
            return None
        return self._state.steps[self._state.current_index]

    def all_steps(self) -> list[ExecutionStep]:
        return list(self._state.steps)

    def current_step_index(self) -> int:
        return self._state.current_index

    def changed_variables(self, step_index: int) -> list[BindingSnapshot]:
        if step_index < 0 or step_index >= len(self._state.steps):
            return []
        return [binding for binding in self._state.steps[step_index].bindings if binding.changed]

    def variable_history(self, name: str) -> list[VariableHistoryEntry]:
        """Return the captured value of `name` at every step that has it."""
        entries: list[VariableHistoryEntry] = []
        for index, step in enumerate(self._state.steps):
            for binding in step.bindings:
                if binding.name == name:
                    entries.append(VariableHistoryEntry(step=index, value=binding.value))
                    break
        return entries

    def clear_history(self) -> None:
        self._state.steps.clear()
        self._state.current_index = -1
        self._previous_snapshot = None

    def _binding_changed(self, name: str, value: CapturedValue) -> bool:
        if self._previous_snapshot is None:
            return True
        previous = self._previous_snapshot.variables.get(name)
        if previous is None:
            return True
        return not values_equal(previous, value)

    def _append(self, step: ExecutionStep) -> None:
        state = self._state
        if state.current_index < len(state.steps) - 1:
            del state.steps[state.current_index + 1 :]
        state.steps.append(step)
        state.current_index += 1
        if len(state.steps) > state.capacity:
            state.steps.pop(0)
            state.current_index -= 1

    def _next_step_id(self) -> str:
        self._step_counter += 1
        return f"step-{self._step_counter:06d}"


def _visible_bindings(
    context: ExecutionContext | Mapping[str, object],
) -> Iterable[tuple[str, object]]:
    items = context.bindings() if isinstance(context, ExecutionContext) else context.items()
    for name, value in items:
        if name.startswith("_") or name in CAPABILITY_NAMES or callable(value):
            continue
        yield name, value

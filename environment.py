import logging
import weakref
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable as PyCallable, Dict, List, Optional

from errors import DuplicateBinding, ImmutableAssignment, UndefinedIdentifier
from values import NativeFunction, format_value

logger = logging.getLogger(__name__)

GLOBAL_FRAME = 0


@dataclass
class Binding:
    """Mutable slot holding one variable's value."""
    name: str
    value: Any
    is_constant: bool = False

    def get(self) -> Any:
        return self.value

    def set(self, new_value: Any):
        if self.is_constant:
            raise ImmutableAssignment(
                f"Cannot assign to constant '{self.name}' (currently {format_value(self.value)})"
            )
        self.value = new_value


@dataclass(eq=False)
class Frame:
    """One scope level. A frame keeps its parent alive; the arena only indexes it."""
    handle: int
    parent: Optional['Frame']
    bindings: Dict[str, Binding] = field(default_factory=dict)

    @property
    def parent_handle(self) -> Optional[int]:
        return self.parent.handle if self.parent is not None else None


class Environment:
    """
    Chained scopes indexed by an arena of integer handles.

    The arena holds frames weakly. A frame stays alive while it is on the
    scope stack, while a child frame chains to it, or while a closure
    holds it (UserFunction.anchor). Once none of those remain its slot is
    released and the handle goes back on the free list for reuse.
    """

    def __init__(self):
        self._slots: List[Optional[weakref.ref]] = []
        self._free: List[int] = []
        self._stack: List[Frame] = [self._new_frame(None)]

    def _new_frame(self, parent: Optional[Frame]) -> Frame:
        if self._free:
            handle = self._free.pop()
        else:
            handle = len(self._slots)
            self._slots.append(None)
        frame = Frame(handle, parent)
        self._slots[handle] = weakref.ref(frame, partial(self._release, handle))
        return frame

    def _release(self, handle: int, ref: weakref.ref):
        # Called when a frame is collected; the slot may already hold a newer frame
        if self._slots[handle] is ref:
            self._slots[handle] = None
            self._free.append(handle)

    @property
    def current(self) -> int:
        """Handle of the frame new declarations go into."""
        return self._stack[-1].handle

    @property
    def current_frame(self) -> Frame:
        return self._stack[-1]

    @property
    def depth(self) -> int:
        """Number of frames on the chain from the current frame to the global one."""
        depth = 0
        frame = self.current_frame
        while frame is not None:
            depth += 1
            frame = frame.parent
        return depth

    @property
    def arena_size(self) -> int:
        """Slots ever allocated, live or free."""
        return len(self._slots)

    @property
    def live_frames(self) -> int:
        return sum(1 for ref in self._slots if ref is not None and ref() is not None)

    def frame(self, handle: int) -> Frame:
        """Resolve a handle. Raises KeyError if no live frame has it."""
        ref = self._slots[handle] if 0 <= handle < len(self._slots) else None
        frame = ref() if ref is not None else None
        if frame is None:
            raise KeyError(f"No live frame with handle {handle}")
        return frame

    def enter_scope(self, parent: Optional[int] = None) -> int:
        """Push a new frame (child of `parent`, default the current frame) and make it current."""
        parent_frame = self.current_frame if parent is None else self.frame(parent)
        frame = self._new_frame(parent_frame)
        self._stack.append(frame)
        logger.debug("enter scope %d (parent %d)", frame.handle, parent_frame.handle)
        return frame.handle

    def exit_scope(self):
        """Leave the current frame, returning to the frame that was current before it."""
        if len(self._stack) == 1:
            raise RuntimeError("Cannot exit global scope")
        handle = self._stack.pop().handle
        logger.debug("exit scope %d -> %d", handle, self.current)

    @property
    def stack_height(self) -> int:
        """Number of scopes entered and not yet exited, the global one included."""
        return len(self._stack)

    def unwind(self, height: int):
        """Exit scopes until `height` remain."""
        if len(self._stack) > height:
            logger.debug("unwinding %d leftover scope(s)", len(self._stack) - height)
            del self._stack[max(height, 1):]

    def capture(self) -> Frame:
        """The current frame, for a closure to hold on to."""
        return self.current_frame

    def declare(self, name: str, value: Any = None, is_constant: bool = False) -> Binding:
        """Declare a variable or constant in the current frame."""
        scope = self.current_frame.bindings
        if name in scope:
            raise DuplicateBinding(f"'{name}' is already declared in this scope")
        binding = Binding(name, value, is_constant)
        scope[name] = binding
        return binding

    def define_native(self, name: str, function: PyCallable[..., Any], arity: Optional[int] = None) -> Binding:
        """Expose a host function to scripts as a constant binding."""
        return self.declare(name, NativeFunction(name, function, arity), is_constant=True)

    def lookup(self, name: str) -> Optional[Binding]:
        """Search for a binding from the current frame outwards."""
        frame = self.current_frame
        while frame is not None:
            binding = frame.bindings.get(name)
            if binding is not None:
                return binding
            frame = frame.parent
        return None

    def get_binding(self, name: str) -> Binding:
        binding = self.lookup(name)
        if binding is None:
            raise UndefinedIdentifier(f"Undefined identifier '{name}'")
        return binding

    def get(self, name: str) -> Any:
        return self.get_binding(name).get()

    def assign(self, name: str, value: Any):
        self.get_binding(name).set(value)

    def dump(self) -> str:
        """Render the visible frame chain, innermost first."""
        lines = []
        frame = self.current_frame
        while frame is not None:
            lines.append(f"--- frame {frame.handle} ---")
            for name, binding in sorted(frame.bindings.items()):
                const = " (const)" if binding.is_constant else ""
                lines.append(f"  {name}{const} = {format_value(binding.value)}")
            frame = frame.parent
        return "\n".join(lines)

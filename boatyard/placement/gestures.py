"""
Drag-and-drop input folded into placement moves.

Mouse drags and touch drags both drive one DragSession. A mouse drag reports
its drop target directly; a touch drag has no drop event, so on release the
session asks the view for the element under the last tracked point and
decodes it the same way. Either path ends in exactly one call to the
submit callback (normally PlacementEngine.move).
"""
import enum
import logging
import math
import threading
from typing import Any, Callable, Mapping, Optional, Sequence, Union
from pydantic import BaseModel
from boatyard.config import config
from boatyard.placement.records import POOL_SLOT, SlotAddress

logger = logging.getLogger(__name__)

SLOT_ATTR = "data-slot-id"
LOCATION_ATTR = "data-location-id"
POOL_ATTR = "data-pool-id"

ElementAttrs = Mapping[str, str]
HitTest = Callable[[float, float], Union[ElementAttrs, Sequence[ElementAttrs], None]]
SubmitMove = Callable[[str, str, Optional[SlotAddress]], Any]
Schedule = Callable[[float, Callable[[], None]], Any]


class DragState(enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    DRAGGING = "dragging"


class InputKind(enum.Enum):
    POINTER = "pointer"
    TOUCH = "touch"


class DragSource(BaseModel):
    boat_id: str
    location_id: Optional[str] = None
    slot: Optional[str] = None


class DropTarget(BaseModel):
    location_id: str
    slot: Optional[SlotAddress] = None

    @property
    def is_pool(self) -> bool:
        return self.slot is None

    @classmethod
    def grid(cls, location_id: str, row: int, col: int) -> "DropTarget":
        return cls(location_id=location_id, slot=SlotAddress(row, col))

    @classmethod
    def pool(cls, location_id: str) -> "DropTarget":
        return cls(location_id=location_id)


def classify_element(chain: Union[ElementAttrs, Sequence[ElementAttrs], None]) -> Optional[DropTarget]:
    """
    Decode a drop target from an element and its ancestors (innermost first).
    A grid slot carries data-slot-id ("row-col") and data-location-id; a pool
    carries data-pool-id. Grid slots win over an enclosing pool.
    """
    if chain is None:
        return None
    if isinstance(chain, Mapping):
        chain = [chain]

    for attrs in chain:
        slot_key = attrs.get(SLOT_ATTR)
        location_id = attrs.get(LOCATION_ATTR)
        if slot_key and location_id:
            try:
                slot = SlotAddress.parse(slot_key)
            except ValueError:
                logger.warning(f"Ignoring drop target with malformed slot key '{slot_key}'")
                continue
            return DropTarget(location_id=location_id, slot=slot)

    for attrs in chain:
        pool_id = attrs.get(POOL_ATTR)
        if pool_id:
            return DropTarget.pool(pool_id)
    return None


class AutoScroller:
    """
    Scrolls the viewport while a drag hovers near its top or bottom edge,
    as a repeating tick between start() and stop().

    By default the tick runs on a background thread, so scroll_by is called
    off the caller's thread. Hosts with their own event loop pass
    `schedule(delay, callback)` (e.g. asyncio's `loop.call_later`) and every
    tick then runs on that loop. A host may also skip start() and call tick()
    from its own timer.
    """

    def __init__(
        self,
        scroll_by: Callable[[int], None],
        viewport_height: Union[float, Callable[[], float]],
        edge: float = config.AUTO_SCROLL_EDGE,
        step: int = config.AUTO_SCROLL_STEP,
        interval: float = config.AUTO_SCROLL_INTERVAL,
        schedule: Optional[Schedule] = None,
    ):
        self.scroll_by = scroll_by
        self.viewport_height = viewport_height
        self.edge = edge
        self.step = step
        self.interval = interval
        self.schedule = schedule
        self.pointer_y: Optional[float] = None
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        # bumped on every start/stop so callbacks already queued on the loop go stale
        self._generation = 0
        self._scheduled = False

    @property
    def running(self) -> bool:
        if self.schedule is not None:
            return self._scheduled
        return self._thread is not None and self._thread.is_alive()

    def track(self, y: float) -> None:
        self.pointer_y = y

    def _height(self) -> float:
        return self.viewport_height() if callable(self.viewport_height) else self.viewport_height

    def tick(self) -> int:
        """Scroll once if the pointer is inside an edge band; returns the delta applied"""
        if self.pointer_y is None:
            return 0
        delta = 0
        if self.pointer_y < self.edge:
            delta = -self.step
        elif self.pointer_y > self._height() - self.edge:
            delta = self.step
        if delta:
            self.scroll_by(delta)
        return delta

    def start(self) -> None:
        if self.running:
            return
        if self.schedule is not None:
            self._generation += 1
            self._scheduled = True
            self._schedule_next(self._generation)
            logger.debug("Auto-scroll started on host scheduler")
            return
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,), name="auto-scroll", daemon=True
        )
        self._thread.start()
        logger.debug("Auto-scroll started")

    def stop(self) -> None:
        if self.schedule is not None:
            if self._scheduled:
                self._generation += 1
                self._scheduled = False
                logger.debug("Auto-scroll stopped")
            return
        if self._thread is None:
            return
        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        self._thread = None
        self._stop_event = None
        logger.debug("Auto-scroll stopped")

    def _schedule_next(self, generation: int) -> None:
        self.schedule(self.interval, lambda: self._scheduled_tick(generation))

    def _scheduled_tick(self, generation: int) -> None:
        if generation != self._generation:
            return
        try:
            self.tick()
        except Exception:
            logger.exception("Auto-scroll callback failed; stopping auto-scroll")
            self._scheduled = False
            return
        self._schedule_next(generation)

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Auto-scroll callback failed; stopping auto-scroll")
                return


class DragSession:
    """
    State machine for one view's drag-and-drop: Idle -> (Pending) -> Dragging -> Idle.

    Touch drags sit in Pending until the finger has moved further than the
    drag threshold, so a tap still reaches the view's click handler.
    """

    def __init__(
        self,
        submit: SubmitMove,
        resolve_target: Optional[HitTest] = None,
        auto_scroller: Optional[AutoScroller] = None,
        drag_threshold: float = config.DRAG_THRESHOLD_PX,
    ):
        self._submit = submit
        self._resolve_target = resolve_target
        self.auto_scroller = auto_scroller
        self.drag_threshold = drag_threshold

        self.state = DragState.IDLE
        self.source: Optional[DragSource] = None
        self.input_kind: Optional[InputKind] = None
        self._start = (0.0, 0.0)
        self.last_point = (0.0, 0.0)
        self._drop_lock = threading.Lock()

    @classmethod
    def for_engine(cls, engine, moved_by: Optional[str] = None, **kwargs) -> "DragSession":
        def submit(boat_id: str, location_id: str, slot: Optional[SlotAddress]):
            return engine.move(boat_id, location_id, slot, moved_by=moved_by)
        return cls(submit, **kwargs)

    @property
    def is_dragging(self) -> bool:
        return self.state == DragState.DRAGGING

    @property
    def processing(self) -> bool:
        return self._drop_lock.locked()

    def begin_drag(self, boat_id: str, location_id: Optional[str] = None, slot: Optional[str] = None,
                   x: float = 0.0, y: float = 0.0, input_kind: InputKind = InputKind.POINTER) -> bool:
        if self.state != DragState.IDLE or self.processing:
            logger.debug(f"Ignoring drag of '{boat_id}': a drag is already active")
            return False

        if isinstance(slot, SlotAddress):
            slot = slot.key
        self.source = DragSource(boat_id=boat_id, location_id=location_id, slot=slot)
        self.input_kind = input_kind
        self._start = (x, y)
        self.last_point = (x, y)

        if input_kind == InputKind.TOUCH:
            self.state = DragState.PENDING
            logger.debug(f"Touch on '{boat_id}' pending until it moves {self.drag_threshold}px")
        else:
            self._enter_dragging()
        return True

    def update_pointer(self, x: float, y: float) -> None:
        if self.state == DragState.IDLE:
            return
        self.last_point = (x, y)
        if self.state == DragState.PENDING:
            distance = math.hypot(x - self._start[0], y - self._start[1])
            if distance > self.drag_threshold:
                self._enter_dragging()
        if self.auto_scroller is not None:
            self.auto_scroller.track(y)

    def end_drag(self, drop_target: Optional[DropTarget] = None):
        """
        Finish the drag. Returns whatever the submit callback returns, or None
        when the gesture was a tap, a cancel, or a duplicate drop. Placement
        errors from the submit callback propagate to the caller.
        """
        if self.state == DragState.IDLE:
            return None
        if self.state == DragState.PENDING:
            logger.debug("Touch released before the drag threshold; treating it as a tap")
            self._reset()
            return None
        if not self._drop_lock.acquire(blocking=False):
            logger.info("Ignoring drop while the previous drop is still being applied")
            return None

        try:
            target = drop_target
            if target is None and self.input_kind == InputKind.TOUCH:
                target = self.resolve_at(*self.last_point)
            if target is None:
                logger.debug("Drag released outside any drop target; cancelled")
                return None

            source = self.source
            logger.info(
                f"Drop of '{source.boat_id}' from {source.location_id}/{source.slot} onto "
                f"{target.location_id}/{target.slot.key if target.slot else POOL_SLOT}"
            )
            return self._submit(source.boat_id, target.location_id, target.slot)
        finally:
            self._reset()
            self._drop_lock.release()

    def cancel(self) -> None:
        if self.state != DragState.IDLE:
            logger.debug("Drag cancelled")
        self._reset()

    def resolve_at(self, x: float, y: float) -> Optional[DropTarget]:
        if self._resolve_target is None:
            return None
        return classify_element(self._resolve_target(x, y))

    def _enter_dragging(self) -> None:
        self.state = DragState.DRAGGING
        if self.auto_scroller is not None:
            self.auto_scroller.track(self.last_point[1])
            self.auto_scroller.start()

    def _reset(self) -> None:
        if self.auto_scroller is not None:
            self.auto_scroller.stop()
        self.state = DragState.IDLE
        self.source = None
        self.input_kind = None

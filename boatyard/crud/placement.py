"""
Glue between the placement engine and the database.

Each placement request loads a fresh snapshot of locations and boats into a
PlacementEngine, lets the engine plan and validate the change, and saves the
result through SqlPersistence in a single commit. A process-wide gate keeps
the whole load/plan/save sequence to one request at a time so two requests
can never both see a slot as vacant.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Iterable, List
from sqlalchemy.orm import Session
from boatyard.models.boat import Boat
from boatyard.models.location import Location
from boatyard.placement.errors import TransitionInFlight
from boatyard.placement.records import BoatRecord, LocationRecord, MovementEvent
from boatyard.placement.transitions import PlacementEngine
from boatyard.crud.boat_movement import record_movement

logger = logging.getLogger(__name__)

placement_gate = threading.Lock()


def load_locations(db: Session) -> List[LocationRecord]:
    rows = db.query(Location).order_by(Location.name).all()
    return [LocationRecord.model_validate(row) for row in rows]


def load_boats(db: Session) -> List[BoatRecord]:
    rows = db.query(Boat).order_by(Boat.name).all()
    return [BoatRecord.model_validate(row) for row in rows]


class SqlPersistence:
    """Persistence collaborator: writes staged records in one transaction"""

    def __init__(self, db: Session):
        self.db = db

    def __call__(
        self,
        locations: Iterable[LocationRecord],
        boats: Iterable[BoatRecord],
        removed_locations: Iterable[LocationRecord] = (),
        removed_boats: Iterable[BoatRecord] = (),
    ) -> bool:
        try:
            for record in locations:
                row = self.db.query(Location).filter(Location.id == record.id).first()
                if row is None:
                    raise ValueError(f"Location '{record.id}' disappeared while saving")
                row.name = record.name
                row.site_id = record.site_id
                row.shape = record.shape
                row.rows = record.rows
                row.columns = record.columns
                # assign fresh containers so the JSON columns are flagged dirty
                row.boats = dict(record.boats)
                row.pool_boats = list(record.pool_boats)

            for record in boats:
                row = self.db.query(Boat).filter(Boat.id == record.id).first()
                if row is None:
                    raise ValueError(f"Boat '{record.id}' disappeared while saving")
                row.location_name = record.location_name
                row.display_slot = record.display_slot

            for record in removed_locations:
                self.db.query(Location).filter(Location.id == record.id).delete()
            for record in removed_boats:
                self.db.query(Boat).filter(Boat.id == record.id).delete()

            self.db.commit()
            return True
        except Exception:
            self.db.rollback()
            logger.exception("Failed to save placement change")
            return False


class MovementRecorder:
    """Movement listener that appends to the boat_movements table"""

    def __init__(self, db: Session):
        self.db = db

    def __call__(self, event: MovementEvent) -> None:
        record_movement(self.db, event)


@contextmanager
def placement_session(db: Session):
    """Yield an engine over the current database state while holding the placement gate"""
    if not placement_gate.acquire(blocking=False):
        logger.warning("Placement request rejected: another placement is in progress")
        raise TransitionInFlight()
    try:
        engine = PlacementEngine(
            load_locations(db),
            load_boats(db),
            persist=SqlPersistence(db),
            listeners=[MovementRecorder(db)],
        )
        yield engine
    finally:
        placement_gate.release()

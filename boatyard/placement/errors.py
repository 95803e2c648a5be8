from typing import Optional


class PlacementError(Exception):
    """Base class for every failure the placement engine reports"""
    field = "none"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        return {"field": self.field, "message": self.message}


class SlotOccupied(PlacementError):
    field = "slot"

    def __init__(self, location_name: str, slot_display: str, occupant_id: str):
        super().__init__(f"Slot {slot_display} in '{location_name}' is already occupied by boat '{occupant_id}'")
        self.location_name = location_name
        self.slot_display = slot_display
        self.occupant_id = occupant_id


class InvalidSlot(PlacementError):
    field = "slot"

    def __init__(self, location_name: str, slot, reason: Optional[str] = None):
        message = f"Slot {slot} is not a valid slot in '{location_name}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.location_name = location_name
        self.slot = slot


class LocationNotFound(PlacementError):
    field = "location"

    def __init__(self, location_ref):
        super().__init__(f"Location '{location_ref}' not found")
        self.location_ref = location_ref


class AssetNotFound(PlacementError):
    field = "boat_id"

    def __init__(self, boat_ref):
        super().__init__(f"Boat '{boat_ref}' not found")
        self.boat_ref = boat_ref


class AssetAlreadyAssigned(PlacementError):
    field = "boat_id"

    def __init__(self, boat_id: str, location_name: str):
        super().__init__(f"Boat '{boat_id}' is already assigned to '{location_name}'; move it instead")
        self.boat_id = boat_id
        self.location_name = location_name


class NoVacantSlot(PlacementError):
    field = "location"

    def __init__(self, location_name: str):
        super().__init__(f"Location '{location_name}' has no vacant slot")
        self.location_name = location_name


class TransitionInFlight(PlacementError):
    def __init__(self):
        super().__init__("Another placement change is still being saved; try again")


class PersistenceFailed(PlacementError):
    def __init__(self, reason: Optional[str] = None):
        message = "Placement change could not be saved"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class LocationNameTaken(PlacementError):
    field = "name"

    def __init__(self, name: str):
        super().__init__(f"Location name '{name}' is already in use")
        self.name = name

from .snapshot_service import SnapshotService
from .shipment_service import ShipmentService

__all__ = [
    'SnapshotService',
    'ShipmentService'
]

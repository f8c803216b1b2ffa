"""RecordMovement: apply a manual stock movement to a lot."""

from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from medstock.domain import medstock
from medstock.lot.lot import InventoryLot


@medstock.command(part_of="InventoryLot")
class RecordMovement:
    lot_id = Identifier(required=True)
    movement_type = String(required=True, max_length=20)
    quantity = Integer(required=True)
    reason = String(required=True, max_length=30)
    performed_by = Identifier()
    reference = String(max_length=100)
    notes = String(max_length=200)
    expected_revision = Integer()  # Optional optimistic check


@medstock.command_handler(part_of=InventoryLot)
class RecordMovementHandler:
    @handle(RecordMovement)
    def record_movement(self, command):
        repo = current_domain.repository_for(InventoryLot)
        lot = repo.get(command.lot_id)
        lot.check_revision(command.expected_revision)
        lot.apply_movement(
            movement_type=command.movement_type,
            quantity=command.quantity,
            reason=command.reason,
            performed_by=command.performed_by,
            reference=command.reference,
            notes=command.notes,
        )
        repo.add(lot)
        return str(lot.id)

"""
Entity persistence used by the import pipeline.

The importer only depends on the EntityStore protocol; SqlAlchemyStore is the
database-backed implementation wired into the API and console.
"""
import logging
from typing import Any, Dict, List, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rendezvous.db.models import Appointment, Client, Service

logger = logging.getLogger(__name__)

Entity = Dict[str, Any]


class EntityStore(Protocol):
    def create_client(self, data: Entity) -> Entity: ...

    def create_service(self, data: Entity) -> Entity: ...

    def create_appointment(self, data: Entity) -> Entity: ...

    def get_clients(self) -> List[Entity]: ...

    def get_services(self) -> List[Entity]: ...


def client_to_dict(client: Client) -> Entity:
    return {
        "id": client.id,
        "firstName": client.first_name,
        "lastName": client.last_name,
        "name": f"{client.first_name} {client.last_name}".strip(),
        "email": client.email or "",
        "phone": client.phone or "",
        "address": client.address or "",
        "city": client.city or "",
        "province": client.province or "",
        "postalCode": client.postal_code or "",
        "fullAddress": client.full_address or "",
        "notes": client.notes or "",
        "loyaltyPoints": client.loyalty_points or 0,
    }


def service_to_dict(service: Service) -> Entity:
    return {
        "id": service.id,
        "name": service.name,
        "description": service.description or "",
        "duration": service.duration,
        "price": service.price,
        "color": service.color,
        "category": service.category or "",
    }


def appointment_to_dict(appointment: Appointment) -> Entity:
    return {
        "id": appointment.id,
        "clientId": appointment.client_id,
        "serviceId": appointment.service_id,
        "startTime": appointment.start_time,
        "endTime": appointment.end_time,
        "duration": appointment.duration,
        "status": appointment.status,
        "notes": appointment.notes or "",
        "sendReminder": appointment.send_reminder,
        "sendConfirmation": appointment.send_confirmation,
    }


class SqlAlchemyStore:
    """EntityStore backed by a SQLAlchemy session; commits once per created entity."""

    def __init__(self, db: Session):
        self.db = db

    def _save(self, instance):
        self.db.add(instance)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(instance)
        return instance

    def create_client(self, data: Entity) -> Entity:
        client = self._save(Client(
            first_name=data["firstName"],
            last_name=data["lastName"],
            email=data.get("email") or None,
            phone=data.get("phone") or None,
            address=data.get("address") or None,
            city=data.get("city") or None,
            province=data.get("province") or None,
            postal_code=data.get("postalCode") or None,
            full_address=data.get("fullAddress") or None,
            notes=data.get("notes") or None,
            loyalty_points=data.get("loyaltyPoints") or 0,
        ))
        logger.debug("Created client %s (%s)", client.id, client.email)
        return client_to_dict(client)

    def create_service(self, data: Entity) -> Entity:
        service = self._save(Service(
            name=data["name"],
            description=data.get("description") or None,
            duration=data["duration"],
            price=data["price"],
            color=data["color"],
            category=data.get("category") or None,
        ))
        logger.debug("Created service %s (%s)", service.id, service.name)
        return service_to_dict(service)

    def create_appointment(self, data: Entity) -> Entity:
        appointment = self._save(Appointment(
            client_id=data["clientId"],
            service_id=data.get("serviceId"),
            start_time=data["startTime"],
            end_time=data["endTime"],
            duration=data["duration"],
            status=data.get("status") or "pending",
            notes=data.get("notes") or None,
            send_reminder=bool(data.get("sendReminder")),
            send_confirmation=bool(data.get("sendConfirmation")),
        ))
        logger.debug("Created appointment %s for client %s", appointment.id, appointment.client_id)
        return appointment_to_dict(appointment)

    def get_clients(self) -> List[Entity]:
        return [client_to_dict(client) for client in self.db.query(Client).order_by(Client.id).all()]

    def get_services(self) -> List[Entity]:
        return [service_to_dict(service) for service in self.db.query(Service).order_by(Service.id).all()]

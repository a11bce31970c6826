"""
Third-party integrations: Google Calendar/Contacts, QuickBooks, Twilio SMS
and Google Maps geocoding.

Reads go through IntegrationCache with a fixed TTL per call site; writes
(calendar events, invoices, SMS) are never cached.
"""
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from rendezvous.core.config import Settings, settings
from rendezvous.integrations.cache import IntegrationCache, IntegrationError

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_URL = "https://www.googleapis.com/calendar/v3/calendars/{calendar_id}/events"
GOOGLE_CONTACTS_URL = "https://people.googleapis.com/v1/people/me/connections"
GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"
TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"
QUICKBOOKS_URL = "https://quickbooks.api.intuit.com"
QUICKBOOKS_SANDBOX_URL = "https://sandbox-quickbooks.api.intuit.com"

GEOCODE_TTL_SECONDS = 600
DISTANCE_TTL_SECONDS = 3600
ADDRESS_VALIDATION_TTL_SECONDS = 86400
CONTACTS_TTL_SECONDS = 1800


def _raise_for_status(response: httpx.Response, label: str) -> None:
    if response.is_error:
        raise IntegrationError(f"{label}: {response.status_code} {response.reason_phrase}", response.status_code)


def _bearer(access_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


class APIIntegrationManager:
    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[httpx.Client] = None,
        cache: Optional[IntegrationCache] = None,
    ):
        self.config = config or settings
        self.client = client or httpx.Client(timeout=self.config.integration_http_timeout_seconds)
        self.cache = cache or IntegrationCache(
            retry_attempts=self.config.integration_retry_attempts,
            retry_delay=self.config.integration_retry_delay_seconds,
        )

    def close(self) -> None:
        self.client.close()

    @property
    def quickbooks_base_url(self) -> str:
        return QUICKBOOKS_SANDBOX_URL if self.config.quickbooks_sandbox else QUICKBOOKS_URL

    # Google Calendar

    def sync_google_calendar(self, access_token: str, calendar_id: str) -> Dict[str, Any]:
        def request():
            response = self.client.get(GOOGLE_CALENDAR_URL.format(calendar_id=calendar_id), headers=_bearer(access_token))
            _raise_for_status(response, "Google Calendar API error")
            return response.json()

        return self.cache.make_request(f"google_calendar_{calendar_id}", request)

    def create_google_calendar_event(self, access_token: str, calendar_id: str, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an event. ``event`` follows the Calendar API shape: summary,
        optional description, start/end ``{dateTime, timeZone}`` and optional
        attendees ``[{email}]``.
        """
        response = self.client.post(
            GOOGLE_CALENDAR_URL.format(calendar_id=calendar_id),
            headers=_bearer(access_token),
            json=event,
        )
        _raise_for_status(response, "Failed to create calendar event")
        logger.info("Created Google Calendar event in %s", calendar_id)
        return response.json()

    # QuickBooks

    def sync_quickbooks_customers(self, access_token: str, company_id: str) -> Dict[str, Any]:
        def request():
            response = self.client.get(
                f"{self.quickbooks_base_url}/v3/company/{company_id}/customers",
                headers={**_bearer(access_token), "Accept": "application/json"},
            )
            _raise_for_status(response, "QuickBooks API error")
            return response.json()

        return self.cache.make_request(f"quickbooks_customers_{company_id}", request)

    def create_quickbooks_invoice(self, access_token: str, company_id: str, customer_id: str,
                                  items: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Each item needs ``description``, ``amount`` (unit price) and ``quantity``."""
        invoice = {
            "Line": [
                {
                    "Id": index,
                    "LineNum": index,
                    "Amount": item["amount"] * item["quantity"],
                    "DetailType": "SalesItemLineDetail",
                    "SalesItemLineDetail": {
                        "ItemRef": {"value": "1", "name": item["description"]},
                        "Qty": item["quantity"],
                        "UnitPrice": item["amount"],
                    },
                }
                for index, item in enumerate(items, start=1)
            ],
            "CustomerRef": {"value": customer_id},
        }
        response = self.client.post(
            f"{self.quickbooks_base_url}/v3/company/{company_id}/invoice",
            headers={**_bearer(access_token), "Accept": "application/json"},
            json=invoice,
        )
        _raise_for_status(response, "Failed to create QuickBooks invoice")
        logger.info("Created QuickBooks invoice for customer %s", customer_id)
        return response.json()

    # Twilio

    def send_sms(self, to: str, message: str) -> Dict[str, Any]:
        account_sid = self.config.twilio_account_sid
        response = self.client.post(
            TWILIO_MESSAGES_URL.format(account_sid=account_sid),
            auth=(account_sid, self.config.twilio_auth_token),
            data={"To": to, "From": self.config.twilio_phone_number, "Body": message},
        )
        _raise_for_status(response, "Twilio SMS error")
        logger.info("Sent SMS to %s", to)
        return response.json()

    def send_appointment_reminder(self, client_phone: str, date: str, time: str, service: str,
                                  location: str) -> Dict[str, Any]:
        message = (
            f"Rappel: Vous avez un rendez-vous {service} le {date} à {time} chez {location}. "
            "Pour annuler, répondez STOP."
        )
        return self.send_sms(client_phone, message)

    # Google Maps

    def geocode_address(self, address: str) -> Dict[str, Any]:
        def request():
            response = self.client.get(GEOCODE_URL, params={"address": address, "key": self.config.google_maps_api_key})
            _raise_for_status(response, "Geocoding error")
            data = response.json()
            if data.get("status") != "OK":
                raise IntegrationError(f"Geocoding failed: {data.get('status')}")
            return data["results"][0]

        return self.cache.make_request(f"geocode_{address}", request, GEOCODE_TTL_SECONDS)

    def calculate_distance(self, origin: str, destination: str) -> Dict[str, Any]:
        def request():
            response = self.client.get(
                DISTANCE_MATRIX_URL,
                params={"origins": origin, "destinations": destination, "key": self.config.google_maps_api_key},
            )
            _raise_for_status(response, "Distance calculation error")
            data = response.json()
            if data.get("status") != "OK":
                raise IntegrationError(f"Distance calculation failed: {data.get('status')}")
            return data["rows"][0]["elements"][0]

        return self.cache.make_request(f"distance_{origin}_{destination}", request, DISTANCE_TTL_SECONDS)

    def validate_canadian_address(self, street: str, city: str, province: str, postal_code: str) -> Dict[str, Any]:
        address = {"street": street, "city": city, "province": province, "postalCode": postal_code}

        def request():
            result = self.geocode_address(f"{street}, {city}, {province} {postal_code}, Canada")
            is_canadian = any(
                "country" in component.get("types", []) and component.get("short_name") == "CA"
                for component in result.get("address_components", [])
            )
            if not is_canadian:
                raise IntegrationError("Address is not in Canada")
            return {
                "isValid": True,
                "formatted": result.get("formatted_address"),
                "coordinates": result.get("geometry", {}).get("location"),
                "components": result.get("address_components", []),
            }

        key = f"validate_address_{json.dumps(address, sort_keys=True, ensure_ascii=False)}"
        return self.cache.make_request(key, request, ADDRESS_VALIDATION_TTL_SECONDS)

    # Google Contacts

    def sync_contacts(self, access_token: str) -> Dict[str, Any]:
        def request():
            response = self.client.get(
                GOOGLE_CONTACTS_URL,
                params={"personFields": "names,emailAddresses,phoneNumbers"},
                headers=_bearer(access_token),
            )
            _raise_for_status(response, "Google Contacts API error")
            return response.json()

        return self.cache.make_request("google_contacts", request, CONTACTS_TTL_SECONDS)

    def clear_cache(self, pattern: Optional[str] = None) -> int:
        return self.cache.clear_cache(pattern)

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.cache.get_cache_stats()


_api_integrations: Optional[APIIntegrationManager] = None


def get_api_integrations() -> APIIntegrationManager:
    global _api_integrations
    if _api_integrations is None:
        _api_integrations = APIIntegrationManager()
    return _api_integrations

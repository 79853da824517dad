"""
Gateway event names.

Gateway -> client events are pushed by the WhatsApp Web gateway; the
``*_REQUEST`` ones expect an acknowledgement carrying the answer.
Client -> gateway events are acknowledged calls.
"""


class GatewayEvent:
    """Gateway -> client."""
    CONNECTION_UPDATE = "connection.update"
    CREDS_UPDATE = "creds.update"
    KEYS_UPDATE = "keys.update"
    MESSAGES_UPSERT = "messages.upsert"
    GET_MESSAGE_REQUEST = "messages.get"
    GET_KEYS_REQUEST = "keys.get"


class ClientEvent:
    """Client -> gateway."""
    SEND_MESSAGE = "messages.send"
    REQUEST_PAIRING_CODE = "pairing.request"

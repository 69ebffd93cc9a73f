from typing import Any, Dict, List, Optional
import logging
from .base import ChannelAdapter
from .types import CanonicalMessage, ChannelException

logger = logging.getLogger(__name__)

class Dialog360Adapter(ChannelAdapter):
    """
    Adapter para webhooks de WhatsApp vía 360Dialog.
    Soporta el formato Cloud API (entry -> changes -> value) y el formato
    on-premise antiguo (messages en la raíz del payload).
    """

    provider = "360dialog"

    def normalize_payload(self, payload: Dict[str, Any]) -> List[CanonicalMessage]:
        if not isinstance(payload, dict) or not payload:
            raise ChannelException("Invalid or empty webhook structure")

        # Formato on-premise: { "contacts": [...], "messages": [...] }
        if "messages" in payload and "entry" not in payload:
            return self._normalize_value(payload)

        entries = payload.get("entry")
        if not isinstance(entries, list) or not entries:
            raise ChannelException("Invalid or empty webhook structure")

        canonical: List[CanonicalMessage] = []
        for entry in entries:
            changes = entry.get("changes") if isinstance(entry, dict) else None
            if not isinstance(changes, list) or not changes:
                raise ChannelException("No changes found in entry")
            for change in changes:
                if not isinstance(change, dict):
                    raise ChannelException("Invalid change in entry")
                if change.get("field") != "messages":
                    logger.info(f"ℹ️ 360Dialog: cambio para el campo '{change.get('field')}', ignorando.")
                    continue
                value = change.get("value") or {}
                if not isinstance(value, dict):
                    raise ChannelException("Invalid change value")
                canonical.extend(self._normalize_value(value))
        return canonical

    def _normalize_value(self, value: Dict[str, Any]) -> List[CanonicalMessage]:
        messages = value.get("messages") or []
        if not isinstance(messages, list):
            raise ChannelException("'messages' must be a list")

        names = self._contact_names(value.get("contacts") or [])
        canonical = []
        for msg in messages:
            if not isinstance(msg, dict):
                raise ChannelException("Invalid message in payload")
            sender = msg.get("from")
            text_obj = msg.get("text") if msg.get("type", "text") == "text" else None
            text = text_obj.get("body") if isinstance(text_obj, dict) else None
            if not isinstance(text, str):
                text = None
            if not sender or not text:
                logger.warning(f"⚠️ 360Dialog: mensaje sin remitente o sin texto (type={msg.get('type')}), ignorando.")
                continue
            canonical.append(CanonicalMessage(
                provider=self.provider,
                external_user_id=str(sender),
                display_name=names.get(str(sender)),
                provider_message_id=str(msg["id"]) if msg.get("id") is not None else None,
                content=text,
                raw_payload=msg,
            ))

        self._log_normalization("360Dialog", len(messages), len(canonical))
        return canonical

    @staticmethod
    def _contact_names(contacts: List[Dict[str, Any]]) -> Dict[str, Optional[str]]:
        names = {}
        for contact in contacts if isinstance(contacts, list) else []:
            if not isinstance(contact, dict) or not contact.get("wa_id"):
                continue
            profile = contact.get("profile")
            name = profile.get("name") if isinstance(profile, dict) else None
            names[str(contact["wa_id"])] = name if isinstance(name, str) else None
        return names

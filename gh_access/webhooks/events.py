"""GitHub webhook verification and event parsing.

The webhook secret is shared between GitHub and this service; it must never
be logged or exposed.

Signature verification uses HMAC-SHA256 as specified by GitHub:
https://docs.github.com/en/webhooks/using-webhooks/validating-webhook-deliveries
"""

import hashlib
import hmac


def verify_webhook_signature(payload_body: bytes, signature_header: str, secret: str) -> bool:
    """Verify that a webhook payload was signed by GitHub.

    Args:
        payload_body: Raw request body bytes.
        signature_header: Value of the X-Hub-Signature-256 header.
        secret: The webhook secret configured on the GitHub App.

    Returns:
        True if the signature is valid, False otherwise.
    """
    if not signature_header or not signature_header.startswith("sha256="):
        return False

    expected_signature = hmac.new(
        secret.encode("utf-8"),
        payload_body,
        hashlib.sha256,
    ).hexdigest()

    received_signature = signature_header.removeprefix("sha256=")

    return hmac.compare_digest(expected_signature, received_signature)


def parse_installation_event(payload: dict) -> dict:
    """Extract the fields we log from an `installation` event."""
    installation = payload.get("installation") or {}
    return {
        "action": payload.get("action", ""),
        "installation_id": installation.get("id"),
        "account_login": (installation.get("account") or {}).get("login"),
    }


def parse_installation_repositories_event(payload: dict) -> dict:
    """Extract added/removed repositories from an `installation_repositories` event."""
    installation = payload.get("installation") or {}
    return {
        "action": payload.get("action", ""),
        "installation_id": installation.get("id"),
        "repositories_added": [
            r["full_name"] for r in payload.get("repositories_added") or []
        ],
        "repositories_removed": [
            r["full_name"] for r in payload.get("repositories_removed") or []
        ],
    }

"""
Email gateway client for sending account notifications via HTTP gateway.

Uses HMAC-SHA256 signature for request authentication.
"""

import hashlib
import hmac
import json
import logging

import requests

logger = logging.getLogger(__name__)


class EmailGatewayError(Exception):
    """Raised when email gateway request fails."""


class EmailGatewayClient:
    """Send emails via HTTP gateway with HMAC signature verification."""

    def __init__(
        self,
        gateway_url: str,
        api_key: str,
        hmac_secret: str,
        timeout_seconds: float = 10,
    ):
        """
        Initialize with gateway credentials.

        Args:
            gateway_url: Full URL to the email gateway endpoint
            api_key: API key for X-API-Key header
            hmac_secret: Secret for HMAC-SHA256 signature
            timeout_seconds: Per-request timeout; expiry surfaces as EmailGatewayError

        Raises:
            ValueError: If any credential is empty
        """
        if not gateway_url:
            raise ValueError("gateway_url is required")
        if not api_key:
            raise ValueError("api_key is required")
        if not hmac_secret:
            raise ValueError("hmac_secret is required")

        self.gateway_url = gateway_url
        self.api_key = api_key
        self.hmac_secret = hmac_secret
        self.timeout_seconds = timeout_seconds

    def _sign_and_send(self, payload: dict) -> None:
        """
        Sign payload with HMAC and send to gateway.

        Raises:
            EmailGatewayError: On any failure, including timeouts
        """
        payload_json = json.dumps(payload, separators=(",", ":"))

        signature = hmac.new(
            self.hmac_secret.encode("utf-8"),
            payload_json.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

        headers = {
            "Content-Type": "application/json",
            "X-API-Key": self.api_key,
            "X-Signature": signature,
        }

        try:
            response = requests.post(
                self.gateway_url,
                data=payload_json,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Email gateway connection failed: {e}")
            raise EmailGatewayError(f"Connection failed: {e}") from e

        try:
            response_data = response.json()
        except ValueError:
            logger.error(f"Email gateway returned invalid JSON (status {response.status_code})")
            raise EmailGatewayError("Invalid response from gateway")

        if response.status_code != 200 or not response_data.get("success"):
            error_msg = response_data.get("message", "Unknown error")
            logger.error(f"Email gateway error: {error_msg}")
            raise EmailGatewayError(f"Gateway error: {error_msg}")

    def send_email(self, to: str, subject: str, body: str) -> None:
        """
        Send a plain-text email via gateway.

        Raises:
            EmailGatewayError: On gateway failure
        """
        payload = {
            "type": "custom",
            "email": to,
            "subject": subject,
            "body": body,
            "sender": "auth",
        }
        self._sign_and_send(payload)
        logger.info(f"Email sent to {to}: {subject}")

    def send_password_reset(self, email: str, name: str, reset_url: str, app_name: str) -> None:
        """
        Send the reset link for a pending password reset.

        Raises:
            EmailGatewayError: On any failure
        """
        body = (
            f"Hello {name},\n\n"
            f"Follow this link to reset your {app_name} password:\n"
            f"{reset_url}\n\n"
            "If you did not request a reset, you can ignore this email.\n"
        )
        self.send_email(email, "Password reset request", body)

    def send_password_changed(self, email: str, name: str, login_url: str, app_name: str) -> None:
        """
        Confirm a completed password change.

        Raises:
            EmailGatewayError: On any failure
        """
        body = (
            f"Hello {name},\n\n"
            f"Your {app_name} password was changed successfully.\n"
            f"Sign in here: {login_url}\n"
        )
        self.send_email(email, "Your password has been changed", body)

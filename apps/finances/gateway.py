"""
Payment gateway client.

Both calls return a plain dict, ``{"success": True, ...}`` or
``{"success": False, "error": ...}``; transport failures are reported the
same way instead of raising. With no API key configured, or in DEBUG, a
simulated gateway answers with configurable success rates.
"""

from __future__ import annotations

import logging
import random
import secrets
import time
from decimal import Decimal
from typing import Any

import requests
from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

GATEWAY_NAME = "SimulatedGateway"


def _config() -> dict[str, Any]:
    return settings.PAYMENT_GATEWAY


def _use_simulation() -> bool:
    return settings.DEBUG or not _config().get("API_KEY")


def _reference(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def _simulated_latency() -> None:
    latency = float(_config().get("SIMULATED_LATENCY", 0) or 0)
    if latency > 0:
        time.sleep(latency)


def _post(path: str, payload: dict[str, Any]) -> dict[str, Any]:
    config = _config()
    headers = {
        "Authorization": f"Bearer {config['API_KEY']}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    try:
        response = requests.post(
            f"{config['API_URL'].rstrip('/')}/{path}",
            json=payload,
            headers=headers,
            timeout=config.get("TIMEOUT", 30),
        )
        response.raise_for_status()
        result = response.json()
    except requests.exceptions.RequestException as e:
        logger.error(f"Payment gateway request to {path} failed: {e}")
        return {"success": False, "error": f"Gateway connection error: {e}"}
    except ValueError as e:
        logger.error(f"Payment gateway returned invalid JSON for {path}: {e}")
        return {"success": False, "error": "Gateway returned an invalid response"}

    if not result.get("success"):
        error = result.get("error") or "Unknown gateway error"
        logger.warning(f"Payment gateway declined {path}: {error}")
        return {"success": False, "error": error, "response": result}
    return result


def charge(method: str, amount: Decimal, metadata: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Charge ``amount`` with the given payment method.

    Returns:
        dict: ``transactionId`` on success, ``error`` on failure
    """
    metadata = metadata or {}
    logger.info(f"Charging {amount} via {method}")

    if _use_simulation():
        _simulated_latency()
        success = random.random() < float(_config().get("CHARGE_SUCCESS_RATE", 0.9))
        result = {
            "success": success,
            "transactionId": _reference("TXN"),
            "amount": str(amount),
            "paymentMethod": method,
            "gateway": GATEWAY_NAME,
            "timestamp": timezone.now().isoformat(),
            "metadata": metadata,
        }
        if not success:
            result["error"] = "Payment declined by bank"
        return result

    return _post(
        "charges",
        {"method": method, "amount": str(amount), "metadata": metadata},
    )


def refund(transaction_id: str, amount: Decimal, reason: str = "") -> dict[str, Any]:
    """
    Refund ``amount`` of a previous charge.

    Returns:
        dict: ``refundId`` on success, ``error`` on failure
    """
    logger.info(f"Refunding {amount} of transaction {transaction_id}")

    if _use_simulation():
        _simulated_latency()
        success = random.random() < float(_config().get("REFUND_SUCCESS_RATE", 0.95))
        result = {
            "success": success,
            "refundId": _reference("REF"),
            "originalTransactionId": transaction_id,
            "amount": str(amount),
            "reason": reason,
            "gateway": GATEWAY_NAME,
            "timestamp": timezone.now().isoformat(),
        }
        if not success:
            result["error"] = "Refund processing failed"
        return result

    return _post(
        "refunds",
        {"transaction_id": transaction_id, "amount": str(amount), "reason": reason},
    )

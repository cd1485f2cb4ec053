"""Voucher value objects consumed by the lucky draw."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Union


class VoucherStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


# The catalog service flags an active voucher with ``trangThai == 0``.
CATALOG_ACTIVE_STATUS = 0


def _parse_date(value: Union[str, date, datetime, None], field: str) -> date:
    """Return the calendar date of ``value``.

    Strings are accepted in ISO 8601 form, with or without a time part.
    """

    if value is None:
        raise ValueError(f"{field} must not be None")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise TypeError(f"{field} must be a string or date")
    text = value.strip()
    if not text:
        raise ValueError(f"{field} must not be empty")
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValueError(f"{field} is not an ISO 8601 date: {value!r}") from exc


@dataclass(frozen=True)
class Voucher:
    """A promotional voucher as supplied by the voucher source.

    Attributes
    ----------
    id : str
        Stable unique identifier.
    display_value : float
        Discount magnitude (percentage or currency amount) shown to the user
        and used to derive the draw weight.
    valid_from : date
        First day the voucher may be won (inclusive).
    valid_to : date
        Last day the voucher may be won (inclusive).
    status : VoucherStatus
        Whether the catalog marks the voucher as active.
    stock : Optional[int]
        Remaining stock; ``None`` when the catalog does not track it.
    name : Optional[str]
        Label rendered on the wheel segment.
    """

    id: str
    display_value: float
    valid_from: date
    valid_to: date
    status: VoucherStatus = VoucherStatus.ACTIVE
    stock: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    min_order_value: Optional[float] = None
    redeem_code: Optional[str] = None

    def is_eligible(self, now: datetime) -> bool:
        """Return ``True`` when the voucher may take part in a draw at ``now``."""

        if self.status is not VoucherStatus.ACTIVE:
            return False
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        today = now.date()
        if not (self.valid_from <= today <= self.valid_to):
            return False
        if self.stock is not None and self.stock <= 0:
            return False
        return True

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Voucher":
        """Build a voucher from a catalog service JSON object.

        Parameters
        ----------
        payload : Mapping[str, Any]
            Object as returned by ``GET /Voucher``. ``maVoucher``, ``giaTri``,
            ``ngayBatDau`` and ``ngayKetThuc`` are required.

        Raises
        ------
        ValueError
            If a required field is missing or malformed.
        """

        for key in ("maVoucher", "giaTri", "ngayBatDau", "ngayKetThuc"):
            if payload.get(key) is None:
                raise ValueError(f"voucher payload is missing '{key}'")

        raw_status = payload.get("trangThai")
        status = (
            VoucherStatus.ACTIVE
            if raw_status == CATALOG_ACTIVE_STATUS
            else VoucherStatus.INACTIVE
        )

        stock = payload.get("soLuong")
        min_order = payload.get("dieuKien")
        coupons = payload.get("coupons") or []
        redeem_code = coupons[0].get("maNhap") if coupons else None

        return cls(
            id=str(payload["maVoucher"]),
            display_value=float(payload["giaTri"]),
            valid_from=_parse_date(payload["ngayBatDau"], "ngayBatDau"),
            valid_to=_parse_date(payload["ngayKetThuc"], "ngayKetThuc"),
            status=status,
            stock=int(stock) if stock is not None else None,
            name=payload.get("tenVoucher"),
            description=payload.get("moTa"),
            image=payload.get("hinhAnh"),
            min_order_value=float(min_order) if min_order is not None else None,
            redeem_code=redeem_code,
        )

    def to_snapshot(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict for persisting a won voucher."""

        return {
            "id": self.id,
            "display_value": self.display_value,
            "valid_from": self.valid_from.isoformat(),
            "valid_to": self.valid_to.isoformat(),
            "status": self.status.value,
            "stock": self.stock,
            "name": self.name,
            "description": self.description,
            "image": self.image,
            "min_order_value": self.min_order_value,
            "redeem_code": self.redeem_code,
        }

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> "Voucher":
        """Inverse of :meth:`to_snapshot`."""

        return cls(
            id=str(data["id"]),
            display_value=float(data["display_value"]),
            valid_from=_parse_date(data["valid_from"], "valid_from"),
            valid_to=_parse_date(data["valid_to"], "valid_to"),
            status=VoucherStatus(data.get("status", VoucherStatus.ACTIVE.value)),
            stock=data.get("stock"),
            name=data.get("name"),
            description=data.get("description"),
            image=data.get("image"),
            min_order_value=data.get("min_order_value"),
            redeem_code=data.get("redeem_code"),
        )


__all__ = ["CATALOG_ACTIVE_STATUS", "Voucher", "VoucherStatus"]

"""
Shift records as delivered by the scheduling subsystem.

ShiftRecord is a read-only input contract.  The service-type code on a
record is mapped to a payroll category through exactly one table,
``SERVICE_TYPE_CATEGORIES``; adding or auditing a mapping is a change to
that table only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from payroll_kernel.exceptions import UnknownServiceTypeError


class CancelStatus(str, Enum):
    """Cancellation state of a shift."""

    NONE = "none"
    CANCELLED_WITH_TIME = "cancelled-with-time"  # client cancelled, time still paid
    REMOVED_WITHOUT_TIME = "removed-without-time"
    CANCELLED_WITHOUT_TIME = "cancelled-without-time"

    @property
    def drops_time(self) -> bool:
        return self in (
            CancelStatus.REMOVED_WITHOUT_TIME,
            CancelStatus.CANCELLED_WITHOUT_TIME,
        )


class ServiceType(str, Enum):
    """Closed set of service-type codes used by the scheduler."""

    SHINTAI = "shintai"  # 身体
    JUDO = "judo"  # 重度
    KAJI = "kaji"  # 家事
    TSUIN = "tsuin"  # 通院
    IDO = "ido"  # 移動
    KODO_ENGO = "kodo_engo"  # 行動援護
    SHINYA = "shinya"  # 深夜
    DOKO = "doko"  # 同行
    SHINYA_DOKO = "shinya_doko"  # 深夜(同行)
    JIMU = "jimu"  # 事務
    EIGYO = "eigyo"  # 営業
    KAIGI = "kaigi"  # 会議
    YASUMI_KIBOU = "yasumi_kibou"  # 休み希望
    SHITEI_KYUU = "shitei_kyuu"  # 指定休
    YOTEI = "yotei"  # 予定
    OTHER = "other"


class ServiceCategory(str, Enum):
    """Payroll category a service type aggregates into."""

    ORDINARY_CARE = "ordinary_care"
    ACCOMPANY = "accompany"
    OFFICE = "office"
    SALES = "sales"


# None = known code that carries no pay (days off, plans, meetings).
SERVICE_TYPE_CATEGORIES: dict[ServiceType, ServiceCategory | None] = {
    ServiceType.SHINTAI: ServiceCategory.ORDINARY_CARE,
    ServiceType.JUDO: ServiceCategory.ORDINARY_CARE,
    ServiceType.KAJI: ServiceCategory.ORDINARY_CARE,
    ServiceType.TSUIN: ServiceCategory.ORDINARY_CARE,
    ServiceType.IDO: ServiceCategory.ORDINARY_CARE,
    ServiceType.KODO_ENGO: ServiceCategory.ORDINARY_CARE,
    ServiceType.SHINYA: ServiceCategory.ORDINARY_CARE,
    ServiceType.DOKO: ServiceCategory.ACCOMPANY,
    ServiceType.SHINYA_DOKO: ServiceCategory.ACCOMPANY,
    ServiceType.JIMU: ServiceCategory.OFFICE,
    ServiceType.EIGYO: ServiceCategory.SALES,
    ServiceType.KAIGI: None,
    ServiceType.YASUMI_KIBOU: None,
    ServiceType.SHITEI_KYUU: None,
    ServiceType.YOTEI: None,
    ServiceType.OTHER: None,
}


def parse_service_type(code: str | ServiceType) -> ServiceType:
    """Map a raw scheduler code to ServiceType.

    Raises:
        UnknownServiceTypeError: code is not in the closed set.
    """
    if isinstance(code, ServiceType):
        return code
    try:
        return ServiceType(code)
    except ValueError as e:
        raise UnknownServiceTypeError(str(code)) from e


def classify_service_type(code: str | ServiceType) -> ServiceCategory | None:
    """Category for a code, or None for known non-payable codes."""
    return SERVICE_TYPE_CATEGORIES[parse_service_type(code)]


@dataclass(frozen=True)
class ShiftRecord:
    """
    One scheduled/performed shift.

    ``start_time``/``end_time`` are "HH:MM" strings as stored by the
    scheduler and may be missing.  ``duration_hours`` is the actual
    performed time recorded by the office; None or zero means nothing was
    performed.
    """

    shift_date: date
    service_type: str
    start_time: str | None = None
    end_time: str | None = None
    duration_hours: Decimal | None = None
    cancel_status: CancelStatus = CancelStatus.NONE
    deleted: bool = False
    shift_id: str | None = None
    client_name: str = ""

    def __post_init__(self) -> None:
        if self.duration_hours is not None and not isinstance(self.duration_hours, Decimal):
            if isinstance(self.duration_hours, float):
                raise TypeError("duration_hours must be Decimal, int or str, not float")
            object.__setattr__(self, "duration_hours", Decimal(str(self.duration_hours)))
        if not isinstance(self.cancel_status, CancelStatus):
            object.__setattr__(self, "cancel_status", CancelStatus(self.cancel_status))

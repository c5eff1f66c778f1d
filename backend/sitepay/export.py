import csv
import io
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from .config import Config
from .domain.payment import PaymentRecord

TRANSFER_HEADERS = ["은행코드", "계좌번호", "이체금액", "받는분통장표시", "내통장메모"]


def won(amount: float) -> int:
    """Whole won, half up."""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def transfer_rows(records: Iterable[PaymentRecord], sender: Optional[str] = None) -> List[dict]:
    """Bank bulk-transfer sheet, one row per record."""
    sender = sender or Config.SENDER_NAME
    return [
        {
            "은행코드": r.bank_code,
            "계좌번호": r.account_number,
            "이체금액": won(r.total_amount),
            "받는분통장표시": sender,
            "내통장메모": f"{r.worker_name} 가불",
        }
        for r in records
    ]


def _man_day(value: float) -> float:
    return round(value, 1)


def payslip_rows(record: PaymentRecord) -> List[list]:
    """Payslip sheet: header block, work entries beside deduction lines, totals."""
    deductions = record.deduction_breakdown.lines
    rows: List[list] = [
        ["월급제 노임명세서", "", "", "", "", ""],
        [],
        ["성명", record.worker_name, "팀", record.team_name, "지급월", record.month],
        ["주민등록번호", record.id_number or "-", "시공사", record.company_name or "-", "은행", record.bank_name or "-"],
        ["총 공수", _man_day(record.total_man_day), "지급전", record.gross_amount, "실지급", record.total_amount],
        [],
        ["근무내역", "", "", "", "공제내역", ""],
        ["일자", "현장", "공수", "단가", "항목", "금액"],
    ]
    for i in range(max(len(record.work_entries), len(deductions), 1)):
        work = record.work_entries[i] if i < len(record.work_entries) else None
        line = deductions[i] if i < len(deductions) else None
        if line is not None:
            label, amount = line.label, line.amount
        elif i == 0 and not deductions:
            label, amount = "등록된 공제 항목이 없습니다.", ""
        else:
            label, amount = "", ""
        rows.append([
            work.date if work else "",
            work.site_name if work else "",
            _man_day(work.man_day) if work else "",
            work.unit_price if work else "",
            label,
            amount,
        ])
    rows.append([
        "근무 합계", "",
        _man_day(sum(e.man_day for e in record.work_entries)),
        record.gross_amount,
        "총 공제금",
        record.total_deduction,
    ])
    rows.append([])
    rows.append(["실 지급액", record.total_amount, "", "", "", ""])
    return rows


def to_csv(rows: List, headers: Optional[List[str]] = None) -> str:
    """Dict rows need ``headers``; list rows are written as they are."""
    buf = io.StringIO()
    if headers is not None:
        writer = csv.DictWriter(buf, fieldnames=headers)
        writer.writeheader()
        writer.writerows(rows)
    else:
        csv.writer(buf).writerows(rows)
    return buf.getvalue()

import re

from core.state import SalesLedger

_NUMBERED = re.compile(r"^(?P<prefix>.+)-(?P<seq>\d+)$")


def next_invoice(ledger: SalesLedger, prefix: str = "INV") -> str:
    """Next invoice number for ``prefix``, e.g. ``INV-000042``.

    The sequence continues from the highest number already in the ledger, so
    it stays monotonic across restarts. Invoices imported from elsewhere that
    do not follow the pattern are ignored for numbering but never reused.
    """
    taken = ledger.invoices
    highest = 0
    for invoice in taken:
        m = _NUMBERED.match(invoice)
        if m and m.group("prefix") == prefix:
            highest = max(highest, int(m.group("seq")))

    seq = highest + 1
    candidate = f"{prefix}-{seq:06d}"
    while candidate in taken:
        seq += 1
        candidate = f"{prefix}-{seq:06d}"
    return candidate

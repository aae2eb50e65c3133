"""Human-readable order numbers: ``ORD`` + YYMMDD + a 4-digit daily sequence.

The sequence lives in one counter aggregate per calendar day (UTC), saved in
the same unit of work as the order that draws the number.
"""

from protean.exceptions import ObjectNotFoundError
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.shared.clock import as_utc, utc_now


@marketplace.aggregate
class OrderSequence:
    day: String(identifier=True, max_length=6)
    value: Integer(default=0)


def next_order_number(at=None) -> str:
    day = as_utc(at or utc_now()).strftime("%y%m%d")

    repo = current_domain.repository_for(OrderSequence)
    try:
        sequence = repo.get(day)
    except ObjectNotFoundError:
        sequence = OrderSequence(day=day, value=0)

    sequence.value += 1
    repo.add(sequence)
    return f"ORD{day}{sequence.value:04d}"

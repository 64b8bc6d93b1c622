"""
Recipient Filter Module

Builds the list of addresses an inbound email is forwarded to from the
configured comma-separated list.
"""

import structlog

log = structlog.get_logger()


def compute_forward_targets(
    raw_list: str | None,
    worker_address: str,
    sender_address: str,
    *,
    exclude_sender: bool = False,
) -> tuple[str, ...]:
    """
    Compute forward targets for one inbound email.

    Entries are trimmed and blanks dropped, then duplicates are removed
    case-insensitively (first occurrence wins), the worker's own address is
    removed, and, when `exclude_sender` is set, so is the sender's. Input
    order is kept. Entries are not validated as addresses; SES rejects
    undeliverable destinations itself.

    Args:
        raw_list: Comma-separated addresses (may be None or empty)
        worker_address: Address this worker receives mail on
        sender_address: Envelope sender of the inbound email
        exclude_sender: Also drop the sender's address

    Returns:
        Ordered tuple of forward targets
    """
    excluded = {worker_address.strip().lower()}
    if exclude_sender and sender_address:
        excluded.add(sender_address.strip().lower())

    seen: set[str] = set()
    targets: list[str] = []

    for entry in (raw_list or "").split(","):
        address = entry.strip()
        if not address:
            continue

        key = address.lower()
        if key in seen:
            continue
        seen.add(key)

        if key in excluded:
            continue

        targets.append(address)

    log.debug(
        "forward_targets_computed",
        forward_to=",".join(targets),
        exclude_sender=exclude_sender,
    )

    return tuple(targets)

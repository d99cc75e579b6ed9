"""Offline routing reports.

Replays sample payloads through the same selection logic the relay uses,
without opening any sockets, and summarises where they would go. Useful for
checking that a GELF source's chunked messages spread reasonably over the
upstreams before deploying a configuration.

Example:
    from udpbalancer.analysis import backend_distribution, load_samples, route_payloads

    config = load_config("udp-balancer.conf")
    frame = route_payloads(load_samples("captured.hex"), config)
    print(backend_distribution(frame, config))
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from udpbalancer.classifier import MIN_DATAGRAM_SIZE
from udpbalancer.config import RelayConfig
from udpbalancer.selector import RoutingCounter, select_backend

logger = logging.getLogger(__name__)

DROPPED = "dropped"

ROUTE_COLUMNS = ["sequence", "length", "route", "backend_index", "backend"]
DISTRIBUTION_COLUMNS = ["backend", "affinity", "round_robin", "forwarded", "share"]


def load_samples(path: str | Path) -> list[bytes]:
    """Read hex-encoded payloads, one per line.

    Blank lines and lines starting with ``#`` are skipped. Whitespace inside
    a line is ignored, so ``1e 0f 01 02`` and ``1e0f0102`` are equivalent.

    Raises:
        ValueError: If a line is not valid hexadecimal.
    """
    samples = []
    for line_number, line in enumerate(Path(path).read_text(encoding="utf-8").splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        try:
            samples.append(bytes.fromhex(stripped))
        except ValueError as exc:
            raise ValueError(f"{path}: invalid hex payload at line {line_number}: {exc}") from None
    return samples


def route_payloads(
    payloads: Iterable[bytes],
    config: RelayConfig,
    counter: RoutingCounter | None = None,
) -> pd.DataFrame:
    """Route payloads as the relay would and tabulate the decisions.

    Args:
        payloads: Datagram payloads in arrival order.
        config: Configuration providing the upstreams and GELF flag.
        counter: Routing counter to start from; a fresh one by default.

    Returns:
        DataFrame with one row per payload and columns ``sequence``,
        ``length``, ``route`` (``affinity``, ``round_robin`` or ``dropped``),
        ``backend_index`` (-1 when dropped) and ``backend``.
    """
    counter = counter if counter is not None else RoutingCounter()
    rows = []
    for sequence, payload in enumerate(payloads):
        if len(payload) < MIN_DATAGRAM_SIZE:
            rows.append((sequence, len(payload), DROPPED, -1, None))
            continue
        selection = select_backend(payload, config.upstreams, counter, handle_gelf=config.handle_gelf)
        backend = str(config.upstreams[selection.index])
        rows.append((sequence, len(payload), selection.route.value, selection.index, backend))

    logger.debug("Routed %d sample payloads", len(rows))
    return pd.DataFrame(rows, columns=ROUTE_COLUMNS)


def backend_distribution(frame: pd.DataFrame, config: RelayConfig) -> pd.DataFrame:
    """Summarise routed payloads per backend.

    Every configured backend appears, in configuration order, even if it
    received nothing.

    Returns:
        DataFrame indexed by backend position with columns ``backend``,
        ``affinity``, ``round_robin``, ``forwarded`` and ``share`` (fraction
        of all forwarded payloads).
    """
    routed = frame[frame["route"] != DROPPED]
    counts = (
        routed.groupby(["backend_index", "route"]).size().unstack(fill_value=0)
        if not routed.empty
        else pd.DataFrame()
    )
    counts = counts.reindex(index=range(len(config.upstreams)), columns=["affinity", "round_robin"], fill_value=0)
    counts = counts.fillna(0).astype(int)

    result = pd.DataFrame(
        {
            "backend": [str(upstream) for upstream in config.upstreams],
            "affinity": counts["affinity"].to_numpy(),
            "round_robin": counts["round_robin"].to_numpy(),
        }
    )
    result["forwarded"] = result["affinity"] + result["round_robin"]
    total = int(result["forwarded"].sum())
    result["share"] = result["forwarded"] / total if total else 0.0
    result.index.name = "backend_index"
    return result[DISTRIBUTION_COLUMNS]


def plot_distribution(distribution: pd.DataFrame, path: str | Path) -> Path:
    """Save a stacked bar chart of a backend distribution.

    Args:
        distribution: Output of ``backend_distribution``.
        path: Image file to write; parent directories are created.

    Returns:
        The path written.
    """
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(max(6, len(distribution) * 1.2), 4))
    positions = range(len(distribution))
    ax.bar(positions, distribution["round_robin"], label="round robin", color="steelblue")
    ax.bar(positions, distribution["affinity"], bottom=distribution["round_robin"], label="GELF affinity", color="darkorange")
    ax.set_xticks(list(positions))
    ax.set_xticklabels(distribution["backend"], rotation=30, ha="right")
    ax.set_ylabel("Datagrams")
    ax.set_title("Datagrams per upstream")
    ax.legend()
    ax.grid(True, axis="y", alpha=0.3)

    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
    logger.info("Saved distribution plot to %s", path)
    return path

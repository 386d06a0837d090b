from relax_core.gating import _enact_metrics_enabled

_enact_metrics_runs = 0
_enact_metrics_iterations = 0
_enact_metrics_edges = 0
_enact_metrics_peak_frontier = 0
_enact_metrics_diverged = 0


def enact_metrics_reset():
    global _enact_metrics_runs
    global _enact_metrics_iterations
    global _enact_metrics_edges
    global _enact_metrics_peak_frontier
    global _enact_metrics_diverged
    _enact_metrics_runs = 0
    _enact_metrics_iterations = 0
    _enact_metrics_edges = 0
    _enact_metrics_peak_frontier = 0
    _enact_metrics_diverged = 0


def enact_metrics_get():
    if not _enact_metrics_enabled():
        return {
            "runs": 0,
            "iterations": 0,
            "edges_visited": 0,
            "peak_frontier": 0,
            "diverged": 0,
            "edges_per_iteration": 0.0,
        }
    iterations = int(_enact_metrics_iterations)
    edges = int(_enact_metrics_edges)
    return {
        "runs": int(_enact_metrics_runs),
        "iterations": iterations,
        "edges_visited": edges,
        "peak_frontier": int(_enact_metrics_peak_frontier),
        "diverged": int(_enact_metrics_diverged),
        "edges_per_iteration": (edges / iterations) if iterations else 0.0,
    }


def _enact_metrics_update(*, iterations, edges, peak, diverged=False):
    global _enact_metrics_runs
    global _enact_metrics_iterations
    global _enact_metrics_edges
    global _enact_metrics_peak_frontier
    global _enact_metrics_diverged
    if not _enact_metrics_enabled():
        return
    _enact_metrics_runs += 1
    _enact_metrics_iterations += int(iterations)
    _enact_metrics_edges += int(edges)
    _enact_metrics_peak_frontier = max(_enact_metrics_peak_frontier, int(peak))
    _enact_metrics_diverged += int(bool(diverged))


__all__ = [
    "enact_metrics_reset",
    "enact_metrics_get",
    "_enact_metrics_update",
]

__all__ = ["StatusReconciler"]


def __getattr__(name: str):
    if name == "StatusReconciler":
        from .status_reconciler import StatusReconciler

        return StatusReconciler
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

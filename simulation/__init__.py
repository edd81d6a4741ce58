from .closed_loop import (
    ClosedLoopSimulator,
    LoopResult,
)

__all__ = [
    'ClosedLoopSimulator',
    'LoopResult',
]

"""
CollectorDAO Package

Core imports are lazily loaded so that importing a submodule does not pull
in the whole governance stack. For direct module access, import from
submodules:

    from collectordao.governance import GovernanceEngine
    from collectordao.clock import ManualClock
    from collectordao.exceptions import CollectorDAOException
"""

__version__ = "1.0.0"


# Lazy imports to keep `import collectordao` cheap
def __getattr__(name):
    """Lazy module loading."""
    if name == 'GovernanceEngine':
        from .governance import GovernanceEngine
        return GovernanceEngine
    elif name == 'ManualClock':
        from .clock import ManualClock
        return ManualClock
    elif name == 'CollectorDAOException':
        from .exceptions import CollectorDAOException
        return CollectorDAOException
    raise AttributeError(f"module 'collectordao' has no attribute {name!r}")

__all__ = ['GovernanceEngine', 'ManualClock', 'CollectorDAOException', '__version__']

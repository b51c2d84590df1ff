"""famgraph - Family relationship graph engine.

Ancestor closure, cross-user relative matching, connection requests,
kinship phrase resolution and duplicate-profile merging over a SQLite
backed relationship store.
"""

__version__ = "0.3.0"

# Lazy imports to avoid circular dependencies
def __getattr__(name: str):
    if name == "FamilyGraphService":
        from famgraph.service import FamilyGraphService
        return FamilyGraphService
    if name == "models":
        from famgraph import models
        return models
    if name == "errors":
        from famgraph import errors
        return errors
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

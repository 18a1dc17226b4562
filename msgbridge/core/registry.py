"""Orchestrator registry for breaking circular imports.

This module holds the orchestrator instance so that routes can import it
without causing circular imports with the main module.
"""

# Global orchestrator instance - set by main.py during app creation
orchestrator = None


def set_orchestrator(orchestrator_instance):
    """Set the global orchestrator instance."""
    global orchestrator
    orchestrator = orchestrator_instance


def get_orchestrator():
    """Get the global orchestrator instance."""
    if orchestrator is None:
        raise RuntimeError("Orchestrator not initialized. Did you call set_orchestrator?")
    return orchestrator

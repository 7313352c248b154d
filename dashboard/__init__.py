"""HTTP dashboard for peer provisioning."""

from .dashboard import app, get_manager

__all__ = ['app', 'get_manager']

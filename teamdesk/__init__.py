"""TeamDesk: team, task, project and equipment management API."""

__version__ = "1.0.0"

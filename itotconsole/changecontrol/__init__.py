"""
ITOT Console Change Control

Role-gated change-control workflow for IT and OT infrastructure.

Subpackages:
- rbac: roles, actors and the authorization engine
- statemachine: modification entity and legal transitions
- workflows: coordinator, queries and export
- events: workflow event bus
- notifications: notification dispatch
- config: settings and logging setup
- api: HTTP adapter
"""

__version__ = "1.0.0"

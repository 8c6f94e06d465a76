"""Admin HTTP API and data snapshots."""

from ens_pinner.api.admin import create_app, start_admin_server
from ens_pinner.api.data_api import PoolDataAPI

__all__ = ["create_app", "start_admin_server", "PoolDataAPI"]

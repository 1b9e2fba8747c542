"""
orderdesk config: load from env.

load_postgres_config(), load_workflow_config().
"""
from orderdesk.config.postgres import PostgresConfig, load_postgres_config
from orderdesk.config.workflow import WorkflowConfig, load_workflow_config

__all__ = [
    "PostgresConfig",
    "load_postgres_config",
    "WorkflowConfig",
    "load_workflow_config",
]

"""Framework-independent libraries used by the services layer."""

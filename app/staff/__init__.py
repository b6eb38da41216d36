"""
Staff app for employee task tracking.

Related apps:
    - core: EntityRepository supplies the owner, status and due-date filters

Usage:
    from staff.services import TaskService

    result = TaskService.assign_task("Reconcile March", employee_id="emp-1")
    TaskService.update_status(result.data.id, "completed")
"""

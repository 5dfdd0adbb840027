"""Task execution infrastructure.

- jobs/: transporter job lifecycle, database work queue and worker

The taskiq broker and scheduled tasks live in ``transporter_service.tasks``.
"""

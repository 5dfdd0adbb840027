"""Background task definitions using Taskiq.

- broker.py: taskiq-aio-pika broker and label-based scheduler
- transporter.py: scheduled work-off of the transporter queue
"""

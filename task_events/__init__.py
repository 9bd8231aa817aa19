"""
Task events: task and notification services coordinated over RabbitMQ
"""

__version__ = "1.0.0"

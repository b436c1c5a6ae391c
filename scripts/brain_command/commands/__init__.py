"""Built-in commands. Importing this package registers each of them."""

from brain_command.commands import task_create  # noqa: F401

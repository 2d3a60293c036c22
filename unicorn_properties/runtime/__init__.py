"""Process runtime support for synchronous function entry points."""

from unicorn_properties.runtime.loop import close_loop, get_loop, is_loop_running, run_async

__all__ = ["run_async", "get_loop", "close_loop", "is_loop_running"]

"""Decorators for the ideswitcher application.

This module provides decorators for:
- Performance monitoring: Measuring method execution times
"""

import logging
import time
from functools import wraps
from typing import Callable

logger = logging.getLogger(__name__)


def measure_time(method: Callable):
	"""Decorator to measure the time taken by a method in seconds.

	Time measurement only occurs when debug logging is enabled. If debug logging is disabled, the method is called directly without timing.

	Args:
		method: The method to decorate (time measurement).

	Returns:
		The decorated method.

	Note:
		When debug logging is enabled, logs the execution time with format:
		"{module_name}.{qualname} took {seconds:.3f} seconds"
	"""

	@wraps(method)
	def wrapper(*args, **kwargs):
		if not logger.isEnabledFor(logging.DEBUG):
			return method(*args, **kwargs)
		start = time.time()
		module_name = method.__module__
		qualname = method.__qualname__
		try:
			return method(*args, **kwargs)
		finally:
			logger.debug(
				f"{module_name}.{qualname} took {time.time() - start:.3f} seconds"
			)

	return wrapper

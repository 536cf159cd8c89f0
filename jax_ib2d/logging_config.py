# Copyright 2021 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Logging configuration for the `jax_ib2d` namespace.

Modules log through `logging.getLogger(__name__)`; nothing is printed until
an application calls `setup_logging`.
"""
import logging
import sys
from typing import Optional

LOGGER_NAME = 'jax_ib2d'


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
  """
  Configures the package logger with a console handler and an optional file.

  Args:
    level: Logging level (e.g. `logging.DEBUG`, `logging.INFO`).
    log_file: Optional path; when given, the log is also written there.

  Returns:
    The configured `jax_ib2d` logger.
  """
  logger = logging.getLogger(LOGGER_NAME)
  logger.setLevel(level)

  # Calling twice (e.g. from a notebook) must not duplicate every line.
  if logger.hasHandlers():
    logger.handlers.clear()

  formatter = logging.Formatter(
      '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
      datefmt='%H:%M:%S'
  )

  console_handler = logging.StreamHandler(sys.stdout)
  console_handler.setLevel(level)
  console_handler.setFormatter(formatter)
  logger.addHandler(console_handler)

  if log_file:
    file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

  logger.info('Logging initialized.')
  return logger

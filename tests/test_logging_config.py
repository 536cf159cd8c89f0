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
import logging

from jax_ib2d import logging_config


def test_setup_logging_writes_to_file(tmp_path):
  log_file = tmp_path / 'run.log'
  logger = logging_config.setup_logging(logging.INFO, log_file=str(log_file))
  try:
    assert logger.name == 'jax_ib2d'
    assert len(logger.handlers) == 2
    logging.getLogger('jax_ib2d.simulation').info('Current Time(s): %.6f', 0.5)
    for handler in logger.handlers:
      handler.flush()
    text = log_file.read_text(encoding='utf-8')
    assert 'Logging initialized.' in text
    assert 'jax_ib2d.simulation - INFO - Current Time(s): 0.500000' in text
  finally:
    for handler in list(logger.handlers):
      handler.close()
      logger.removeHandler(handler)


def test_setup_logging_is_idempotent():
  logger = logging_config.setup_logging(logging.WARNING)
  logger = logging_config.setup_logging(logging.WARNING)
  try:
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING
  finally:
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)

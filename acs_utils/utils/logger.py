import logging
import sys
import os
from logging.handlers import RotatingFileHandler
from datetime import datetime
from typing import Optional

from acs_utils.config import LOG_DIR

_LOGGER_NAME = "acs_utils"
_LOG_BASENAME = f"acs_utils_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
_MAX_LINES = 5000
_BACKUP_COUNT = 20
_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

class LineRotatingFileHandler(RotatingFileHandler):
	"""
	Rotates log after a maximum number of lines, not bytes.
	"""
	def __init__(self, filename, maxLines, backupCount=0, encoding=None):
		super().__init__(filename, maxBytes=0, backupCount=backupCount, encoding=encoding)
		self.maxLines = maxLines
		self.lineCount = 0
		self._count_existing_lines()

	def _count_existing_lines(self):
		try:
			with open(self.baseFilename, 'r', encoding=self.encoding or 'utf-8') as f:
				self.lineCount = sum(1 for _ in f)
		except FileNotFoundError:
			self.lineCount = 0

	def emit(self, record):
		super().emit(record)
		self.lineCount += 1
		if self.lineCount >= self.maxLines:
			self.doRollover()
			self.lineCount = 0

def setup_logger(log_dir=None, level=logging.INFO):
	"""
	Set up the acs_utils logger: stdout plus a timestamped file under log_dir
	(default: <project root>/logs) rotating every 5000 lines, keeping the last 20.
	Call this once at program startup; repeated calls only adjust the level.
	"""
	logger = logging.getLogger(_LOGGER_NAME)
	logger.setLevel(level)
	if not logger.handlers:
		ch = logging.StreamHandler(sys.stdout)
		ch.setFormatter(logging.Formatter(_FORMAT))
		logger.addHandler(ch)

		log_dir = str(log_dir or LOG_DIR)
		os.makedirs(log_dir, exist_ok=True)
		fh = LineRotatingFileHandler(os.path.join(log_dir, _LOG_BASENAME), maxLines=_MAX_LINES, backupCount=_BACKUP_COUNT, encoding="utf-8")
		fh.setFormatter(logging.Formatter(_FORMAT))
		logger.addHandler(fh)
	return logger

def get_logger(name: Optional[str] = None):
	"""
	Get the shared project logger, or a named child of it.
	"""
	if name is None:
		return logging.getLogger(_LOGGER_NAME)
	return logging.getLogger(_LOGGER_NAME).getChild(name)

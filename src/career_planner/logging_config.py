"""Centralized logging configuration for career-planner."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "career_planner"


def setup_logging(
	level: Optional[str] = None,
	log_dir: Optional[Path] = None,
) -> logging.Logger:
	"""
	Set up logging with console and file handlers.

	Args:
		level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to env var or INFO.
		log_dir: Directory for log files. Defaults to the configured log_dir.

	Returns:
		Configured package logger
	"""
	level = level or os.getenv("LOG_LEVEL", "INFO")
	log_level = getattr(logging, level.upper(), logging.INFO)

	logger = logging.getLogger(ROOT_LOGGER)
	logger.setLevel(log_level)

	# Avoid duplicate handlers
	if logger.handlers:
		return logger

	detailed_formatter = logging.Formatter(
		"%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
		datefmt="%Y-%m-%d %H:%M:%S",
	)
	simple_formatter = logging.Formatter(
		"%(asctime)s [%(levelname)s] %(message)s",
		datefmt="%H:%M:%S",
	)

	# stdout is the MCP stdio channel, so console logs go to stderr
	console_handler = logging.StreamHandler(sys.stderr)
	console_handler.setLevel(log_level)
	console_handler.setFormatter(simple_formatter)
	logger.addHandler(console_handler)

	if log_dir is None:
		from .config import get_config
		log_dir = get_config().log_dir
	log_path = Path(log_dir)
	log_path.mkdir(parents=True, exist_ok=True)

	file_handler = RotatingFileHandler(
		log_path / f"{ROOT_LOGGER}.log",
		maxBytes=10 * 1024 * 1024,  # 10 MB
		backupCount=5,
	)
	file_handler.setLevel(logging.DEBUG)  # File gets all logs
	file_handler.setFormatter(detailed_formatter)
	logger.addHandler(file_handler)

	return logger

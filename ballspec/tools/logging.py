"""Logging setup."""

import sys
import os
import pathlib
import logging
from ..tools.config import config

PID = os.getpid()


# Root logger config
rootlogger = logging.root
rootlogger.setLevel(0)

# Formatter
formatter = logging.Formatter('%(asctime)s %(name)s %(levelname)s :: %(message)s')

# Stream handler
def add_stdout_handler(level, formatter=formatter):
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(level.upper())
    stdout_handler.setFormatter(formatter)
    rootlogger.addHandler(stdout_handler)
    return stdout_handler

if config['logging']['stdout_level'].lower() != 'none':
    stdout_handler = add_stdout_handler(config['logging']['stdout_level'])

# File handler
def add_file_handler(filename, level, formatter=formatter):
    # Tag path with the process id so concurrent runs do not clobber each other
    file_path = pathlib.Path(f'{filename}_{PID}.log')
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(str(file_path), mode='w')
    file_handler.setLevel(level.upper())
    file_handler.setFormatter(formatter)
    rootlogger.addHandler(file_handler)
    return file_handler

if config['logging']['file_level'].lower() != 'none':
    file_handler = add_file_handler(config['logging']['filename'], config['logging']['file_level'])


"""
Configuration handling.

"""

from configparser import ConfigParser
import os


# Create config
config = ConfigParser()

# Read defaults, user, and local files
config.read(os.path.join(os.path.dirname(__file__), '..', 'ballspec.cfg'))
config.read(os.path.expanduser('~/.ballspec/ballspec.cfg'))
config.read('ballspec.cfg')


"""
Command modules for acs_utils CLI
"""

from acs_utils.commands.info import cmd_info_sequence, cmd_info_tables
from acs_utils.commands.import_acs import cmd_import

__all__ = [
    'cmd_info_sequence',
    'cmd_info_tables',
    'cmd_import',
]

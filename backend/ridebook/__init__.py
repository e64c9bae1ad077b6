"""
Ride-sharing reservation core: trip publication, reservation admission and
seat accounting over pluggable stores.
"""

__version__ = "1.0.0"

"""
slotresolver - bookable appointment slots from provider free slots and layered
availability rules.
"""

__version__ = "0.3.0"

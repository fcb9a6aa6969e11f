"""BioMap - research landscape backend.

Builds labeled branches of papers around a project idea, extracts evidence
from abstracts and answers chat questions grounded in a bounded context packet.
"""

__version__ = "0.1.0"

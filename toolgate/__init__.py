"""Toolgate: governed execution of integration capabilities.

Toolgate turns already-produced plans and action graphs into permissioned,
policy-checked, replayable calls against third-party integrations. The
execution core lives in ``toolgate.exec_core``; ``toolgate.server`` exposes it
over HTTP.
"""

__version__ = "0.1.0"

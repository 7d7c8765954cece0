"""Bug bash scoring service.

Fix events reported by external tooling are scored per participant by
:mod:`bugbash.scoring`, persisted by :mod:`bugbash.persistence` and drained
from the raw record log by the :mod:`bugbash.polling` worker. The Falcon app
in :mod:`bugbash.api` exposes health probes and admin controls.
"""

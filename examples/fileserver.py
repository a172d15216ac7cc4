"""
Static File Server Example

This serves a directory, with an index or a listing for its directories,
falling back to the `public/` resources found along the Python path.

Usage:
    python fileserver.py [DIRECTORY]

Test with:
    http://localhost:8000/           # Index or listing of the directory
    http://localhost:8000/README.md  # Serve a specific file
"""

import sys

from devserve import ServeConfig, server
from devserve.utils.logging import event, info

if __name__ == "__main__":
	handle = server(
		ServeConfig.Make(
			dir=sys.argv[1] if len(sys.argv) > 1 else ".", resourceRoot="public"
		)
	)
	info(f"Serving files on http://localhost:{handle.localPort}/")
	try:
		handle.wait()
	except KeyboardInterrupt:
		event("ManualShutdown")
	finally:
		handle.stopServer()

# EOF

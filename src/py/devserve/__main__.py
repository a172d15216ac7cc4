import sys
from argparse import ArgumentParser

from .config import HOST, PORT, ENGINE, EngineType, ReplOptions, ServeConfig, SSLProps
from .errors import DevServeError
from .repl import ReplServer, startRepl
from .server import server
from .utils.logging import error, event, info


def parser() -> ArgumentParser:
	p = ArgumentParser(
		prog="devserve",
		description="Serves a directory, bundled resources or a custom handler for development.",
	)
	p.add_argument("-d", "--dir", help="Directory to serve, created if missing")
	p.add_argument(
		"-r", "--resource-root", default="", help="Root of the bundled resources"
	)
	p.add_argument(
		"-H", "--handler", help="Custom handler, as 'module:handler', overriding the rest"
	)
	p.add_argument(
		"-R", "--reload", action="store_true", help="Reload the handler on changes"
	)
	p.add_argument(
		"-w",
		"--watch",
		action="append",
		help="Directory watched when reloading (repeatable, default: src)",
	)
	p.add_argument("-N", "--not-found", help="Custom not-found handler, as 'module:handler'")
	p.add_argument("-p", "--port", type=int, default=PORT, help="Port to listen on")
	p.add_argument("--host", default=HOST, help="Interface to listen on")
	p.add_argument(
		"-k",
		"--engine",
		choices=[_.value for _ in EngineType],
		default=ENGINE.value,
		help="Backend engine",
	)
	p.add_argument("--ssl-port", type=int, help="Serve over TLS on this port only")
	p.add_argument("--keystore", help="PEM file with the certificate chain and key")
	p.add_argument("--key-password", help="Password of the key in the keystore")
	p.add_argument("--repl", action="store_true", help="Start a remote Python console")
	p.add_argument("--repl-bind", default=ReplOptions().bind)
	p.add_argument("--repl-port", type=int, default=0)
	p.add_argument(
		"--quiet", action="store_true", help="Do not log requests"
	)
	return p


def configure(args: list[str] | None = None) -> ServeConfig:
	"""Returns the configuration for the given command line arguments."""
	options = parser().parse_args(args)
	if (options.ssl_port is None) != (options.keystore is None):
		parser().error("--ssl-port and --keystore go together")
	return ServeConfig.Make(
		handler=options.handler,
		reload=options.reload,
		watchDirs=options.watch,
		dir=options.dir,
		resourceRoot=options.resource_root,
		notFound=options.not_found,
		host=options.host,
		port=options.port,
		engine=options.engine,
		sslProps=(
			SSLProps(options.ssl_port, options.keystore, options.key_password)
			if options.ssl_port is not None
			else None
		),
		logRequests=not options.quiet,
		repl=(
			ReplOptions(bind=options.repl_bind, port=options.repl_port)
			if options.repl
			else None
		),
	)


def main(args: list[str] | None = None) -> int:
	config = configure(args)
	repl: ReplServer | None = None
	try:
		repl = startRepl(config.repl) if config.repl else None
		handle = server(config)
	except DevServeError as e:
		error(str(e), e.__class__.__name__)
		if repl:
			repl.stop()
		return 1
	scheme = "https" if config.sslProps else "http"
	info(f"Serving on {scheme}://{config.host}:{handle.localPort}", Engine=handle.humanName)
	try:
		while handle.thread and handle.thread.is_alive():
			handle.wait(1.0)
	except KeyboardInterrupt:
		event("ManualShutdown")
	finally:
		handle.stopServer()
		if repl:
			repl.stop()
	event("EOK")
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF

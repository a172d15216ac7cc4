import pytest

from devserve.config import EngineType, ServeConfig, SSLProps
from devserve.engines import ENGINES, EngineOptions, load, sslContext
from devserve.errors import EngineStartError
from devserve.server import engineOptions


def test_engine_options():
	options = engineOptions(ServeConfig.Make(port=9000, host="0.0.0.0"))
	assert options.port == 9000
	assert options.host == "0.0.0.0"
	assert options.join is False
	assert options.httpEnabled
	assert not options.sslEnabled
	assert options.listenPort == 9000
	assert engineOptions(ServeConfig.Make(), join=True).join


def test_engine_options_ssl():
	config = ServeConfig.Make(
		port=9000, sslProps=SSLProps(8443, "dev.pem", "secret")
	)
	options = engineOptions(config)
	assert options.httpEnabled is False
	assert options.sslEnabled is True
	assert options.sslPort == 8443
	assert options.keystorePath == "dev.pem"
	assert options.keyPassword == "secret"
	assert options.listenPort == 8443


def test_listen_port_invalid():
	with pytest.raises(ValueError):
		EngineOptions(sslEnabled=True).listenPort
	with pytest.raises(ValueError):
		EngineOptions(httpEnabled=False).listenPort


def test_ssl_context_errors(tmp_path):
	assert sslContext(EngineOptions()) is None
	with pytest.raises(EngineStartError):
		sslContext(EngineOptions(sslEnabled=True, sslPort=8443))
	with pytest.raises(EngineStartError) as e:
		sslContext(
			EngineOptions(
				sslEnabled=True,
				sslPort=8443,
				keystorePath=str(tmp_path / "missing.pem"),
			)
		)
	assert e.value.port == 8443


def test_load_engines():
	assert set(ENGINES) == set(EngineType)
	engine = load(EngineType.AIO)
	assert engine.NAME == "AIO"


# EOF

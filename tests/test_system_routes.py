from waypost import __version__
from waypost.context import RequestContext
from waypost.router import Router
from waypost.system_routes import client_ip, register_system_routes


def test_client_ip_prefers_headers_then_peer() -> None:
    assert client_ip(RequestContext(path="/", headers={"X-Client-IP": "10.0.0.5"}, client_host="1.1.1.1")) == "10.0.0.5"
    assert client_ip(RequestContext(path="/", headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})) == "203.0.113.9"
    assert client_ip(RequestContext(path="/", headers={"X-Client-IP": "garbage"}, client_host="192.0.2.4")) == "192.0.2.4"


def test_client_ip_maps_ipv6_loopback_and_handles_missing() -> None:
    assert client_ip(RequestContext(path="/", client_host="::1")) == "127.0.0.1"
    assert client_ip(RequestContext(path="/")) is None


def test_system_routes_are_served_under_prefix() -> None:
    router = Router()
    paths = register_system_routes(router, "/sys/")

    info = router.dispatch_request("/sys/system-info", headers={"Host": "example.test:8000"})
    ip = router.dispatch_request("/sys/client-ip", client_host="198.51.100.7")

    assert paths == ["/sys/system-info", "/sys/client-ip"]
    assert info.json_body()["server_software"] == f"waypost/{__version__}"
    assert info.json_body()["server_name"] == "example.test"
    assert ip.json_body() == "198.51.100.7"


def test_system_info_without_host_header() -> None:
    router = Router()
    register_system_routes(router)

    body = router.dispatch_request("/system/system-info").json_body()

    assert body["server_name"] == "Unknown"
    assert set(body) == {"python_version", "python_implementation", "server_software", "server_name", "platform"}

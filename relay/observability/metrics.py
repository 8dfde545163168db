from __future__ import annotations
from prometheus_client import Counter, start_http_server

inbound_messages = Counter("relay_inbound_messages_total", "Inbound chat lines", ["network"])
messages_sent = Counter("relay_messages_sent_total", "Outbound deliveries", ["network"])
send_failures = Counter("relay_send_failures_total", "Failed outbound deliveries", ["network"])
dropped_messages = Counter("relay_dropped_messages_total", "Inbound lines not relayed", ["reason"])
xmpp_reconnects = Counter("relay_xmpp_reconnects_total", "Successful XMPP reconnects")
upload_failures = Counter("relay_upload_failures_total", "Failed image-host uploads")

def serve(port: int) -> None:
    start_http_server(port)

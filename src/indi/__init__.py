"""
INDI connections

- Property model (indi.property): switch, number, text and BLOB vectors, each a named group of
  members belonging to one device. The registry holds the live vectors of one connection, keyed
  by (device, name). Definitions merge into the existing object so references stay current.

- Wire codec (indi.protocol.codec, indi.protocol.decoder): rendering of INDI messages, and an
  incremental decoder for the un-framed stream of XML elements. The decoder keeps partial input
  until it parses, so messages may arrive split across any number of reads.

- Conduit: abstraction of a bi-directional channel. Combines 2 streams for reading and writing.
  Sockets, driver processes (stdin/stdout) and plain streams.
- Connector: connects to an endpoint and provides the conduit. CloseOnErrorConnector wraps
  another connector and closes it when a stream operation fails.

- IndiConnection (indi.client): one INDI endpoint. A reader loop feeds the decoder and applies
  the messages to the registry before notifying subscribers; a writer loop drains the outbound
  queue. Commands render the message and queue it.

- IndiServer (indi.server): relays bytes from every driver to every client and back.

- Discovery: IndiServerDiscovery watches for _indi._tcp services with zeroconf. Events from the
  zeroconf thread are queued and published when update() is called, on the caller's thread.


## Threading

Each connection runs two daemon threads, one reading and one writing. Each relay client
has the same pair, and the relay has one accepting thread. Loops wait at most POLL_INTERVAL
for input or output before checking whether they should stop, and stopping does not wait
for the threads to exit.

Subscribers are called on the reader thread of the connection the message arrived on.
A subscriber that raises is logged and does not stop the loop.
"""

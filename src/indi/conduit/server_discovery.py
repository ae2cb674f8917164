import logging

from zeroconf import Zeroconf, ServiceBrowser

from indi.conduit.discovery import ResourceDiscovery
from indi.connector.socketconn import TCPServerEndpoint

logger = logging.getLogger(__name__)

INDI_SERVICE = 'indi'


class ZeroconfTCPServerEndpoint(TCPServerEndpoint):
    """
    Creates a tcp endpoint from the info provided by a zeroconf-registered service.
    """
    def __init__(self, info):
        addresses = info.parsed_addresses()
        super().__init__(info.server, addresses[0] if addresses else None, info.port)
        self.info = info


class TCPServerDiscovery(ResourceDiscovery):
    """
    Uses zeroconf to discover TCP services.
    Zeroconf calls back on its own thread; the changes are posted the next time update() is
    called. The resources discovered are ZeroconfTCPServerEndpoint instances.
    """
    def __init__(self, service_subtype, use_zeroconf=True, known_addresses=tuple()):
        """
        :param service_subtype: the subtype of the TCP services to detect, without the leading underscore.
            The type is qualified automatically with TCP and local supertypes.
        :param use_zeroconf: when True, the zeroconf service browser is started
        :param known_addresses: TCPServerEndpoint instances that are always available
        """
        super().__init__()
        fqn = TCPServerDiscovery.qualify_service_type(service_subtype)
        if use_zeroconf:
            logger.info("listening for zeroconf services of type %s" % fqn)
            self.zeroconf = Zeroconf()
            self.browser = ServiceBrowser(self.zeroconf, fqn, listener=self)
        else:
            self.zeroconf = None
            self.browser = None

        for a in known_addresses:
            self.available(a.key(), a)

    @staticmethod
    def qualify_service_type(service_subtype):
        """
        >>> TCPServerDiscovery.qualify_service_type("indi")
        '_indi._tcp.local.'
        """
        return "_" + service_subtype + "._tcp.local."

    def add_service(self, zeroconf, type, name):
        """ the service browser found a service. It is published only when zeroconf can describe it """
        info = zeroconf.get_service_info(type, name)
        if not info:
            logger.warning("no info for service %s type %s" % (name, type))
            return
        self.available(name, ZeroconfTCPServerEndpoint(info))

    def remove_service(self, zeroconf, type, name):
        self.unavailable(name)

    def update_service(self, zeroconf, type, name):
        """ a service's records changed, which needs no action """

    def close(self):
        if self.zeroconf is not None:
            self.browser.cancel()
            self.zeroconf.close()
            self.zeroconf = self.browser = None


class IndiServerDiscovery(TCPServerDiscovery):
    """ Discovers INDI servers advertised as _indi._tcp on the local network. """

    def __init__(self, use_zeroconf=True, known_addresses=tuple()):
        super().__init__(INDI_SERVICE, use_zeroconf, known_addresses)

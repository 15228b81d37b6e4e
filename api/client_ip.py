"""Client IP resolution for requests that may arrive through Cloudflare."""

import ipaddress

CF_CONNECTING_IP_HEADER = "CF-Connecting-IP"


def resolve_client_ip(request):
    """
    Determine the client address of a Flask request.

    The CF-Connecting-IP header wins when it holds a valid IP address;
    otherwise the socket peer address is used.

    Args:
        request: The Flask request

    Returns:
        str or None: The client IP address
    """
    header_value = request.headers.get(CF_CONNECTING_IP_HEADER)
    if header_value:
        try:
            return str(ipaddress.ip_address(header_value))
        except ValueError:
            pass

    return request.remote_addr

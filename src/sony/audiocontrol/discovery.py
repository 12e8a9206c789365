"""UPnP/SSDP device description helpers.

Receivers announce the audio control api in their device description as
``av:X_ScalarWebAPI_BaseURL``. Requires the optional ``discovery``
dependency group: ``pip install sony-audio-control[discovery]``
"""

import logging
import re
from typing import Any

from .dataclasses import DeviceEndpoint
from .packets import MAIN_ZONE

_LOGGER = logging.getLogger(__name__)

_NS = {
    "d": "urn:schemas-upnp-org:device-1-0",
    "av": "urn:schemas-sony-com:av",
}


def _log_exception(msg: str, *args: object) -> None:
    """Log an error and turn on traceback if debug is on."""
    _LOGGER.error(msg, *args, exc_info=_LOGGER.getEffectiveLevel() == logging.DEBUG)


def get_uniqueid_from_udn(data: str | None) -> str | None:
    """Extract a unique id from udn."""
    if data is None:
        return None
    try:
        return data[5:].split("-")[4]
    except IndexError:
        _log_exception("Unable to get unique id from %s", data)
        return None


def get_possibly_invalid_xml(data: str) -> Any:
    from defusedxml import ElementTree

    try:
        return ElementTree.fromstring(data)
    except ElementTree.ParseError:
        _LOGGER.info("Device provided corrupt xml, trying with ampersand replacement")
        data = re.sub(r"&(?![A-Za-z]+[0-9]*;|#[0-9]+;|#x[0-9a-fA-F]+;)", r"&amp;", data)
        return ElementTree.fromstring(data)


def get_udn_from_xml(xml: Any) -> str | None:
    result: str | None = xml.findtext("d:device/d:UDN", None, _NS)
    return result


def get_base_url_from_xml(xml: Any) -> str | None:
    result: str | None = xml.findtext(
        "d:device/av:X_ScalarWebAPI_DeviceInfo/av:X_ScalarWebAPI_BaseURL", None, _NS
    )
    return result


def get_endpoint_from_xml(xml: Any, zone: str = MAIN_ZONE) -> DeviceEndpoint | None:
    base_url = get_base_url_from_xml(xml)
    if base_url is None:
        _LOGGER.info("Device description has no audio control base url")
        return None
    try:
        return DeviceEndpoint.from_base_url(base_url, zone)
    except ValueError:
        _log_exception("Unable to get endpoint from %s", base_url)
        return None


async def _get_device_description(session: Any, url: str) -> Any:
    async with session.get(url) as req:
        req.raise_for_status()
        data = await req.text()
        return get_possibly_invalid_xml(data)


async def get_uniqueid_from_device_description(session: Any, url: str) -> str | None:
    """Retrieve and extract unique id from url."""
    import aiohttp
    from defusedxml import ElementTree

    try:
        xml = await _get_device_description(session, url)
        udn = get_udn_from_xml(xml)
        return get_uniqueid_from_udn(udn)
    except (aiohttp.ClientError, TimeoutError, ElementTree.ParseError):
        _log_exception("Unable to get device description from %s", url)
        return None


async def get_endpoint_from_device_description(
    session: Any, url: str, zone: str = MAIN_ZONE
) -> DeviceEndpoint | None:
    """Retrieve the description at *url* and return the api endpoint it announces."""
    import aiohttp
    from defusedxml import ElementTree

    try:
        xml = await _get_device_description(session, url)
    except (aiohttp.ClientError, TimeoutError, ElementTree.ParseError):
        _log_exception("Unable to get device description from %s", url)
        return None
    return get_endpoint_from_xml(xml, zone)

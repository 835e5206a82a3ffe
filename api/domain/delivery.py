"""
Contact-save delivery: how a generated .vcf reaches the visitor's device.

No single technique works on every browser, so the flow is an ordered
fallback chain picked from DELIVERY_TABLE for a given ClientPlatform. The
browser itself is reached through the `Browser` port, which lets the table be
exercised with synthetic platforms in tests.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Protocol

from api.domain.profile import ProfileView
from api.domain.vcard import encode, vcard_filename

VCARD_MIME = "text/vcard"

_IOS_RE = re.compile(r"iPhone|iPad|iPod", re.IGNORECASE)
_ANDROID_RE = re.compile(r"Android", re.IGNORECASE)
_IN_APP_RE = re.compile(r"FBAN|FBAV|Instagram|LinkedIn|Twitter|\bLine/|MicroMessenger|Snapchat", re.IGNORECASE)
_CHROME_IOS_RE = re.compile(r"CriOS", re.IGNORECASE)
_FIREFOX_IOS_RE = re.compile(r"FxiOS", re.IGNORECASE)


class DeliveryError(Exception):
    """A delivery path failed; the next one in the chain may still work."""


class ShareCancelledError(Exception):
    """The visitor dismissed the native share sheet (not an error)."""


class DeliveryMethod(str, Enum):
    NATIVE_SHARE = "native_share"
    WINDOW_OPEN = "window_open"
    NAVIGATE = "navigate"
    ANCHOR_NEW_TAB = "anchor_new_tab"
    ANCHOR_DOWNLOAD = "anchor_download"
    ANCHOR_OPEN_TAB = "anchor_open_tab"


@dataclass(frozen=True)
class ClientPlatform:
    os: str = "desktop"  # ios | android | desktop
    browser: str = "other"  # safari | chrome | firefox | other
    in_app: bool = False
    share_available: bool = False
    can_share_files: bool = False

    @property
    def is_mobile(self) -> bool:
        return self.os in ("ios", "android")

    def to_dict(self) -> dict:
        return {
            "os": self.os,
            "browser": self.browser,
            "inApp": self.in_app,
            "shareAvailable": self.share_available,
            "canShareFiles": self.can_share_files,
        }


def detect_platform(user_agent: str | None, *, share_available: bool = False, can_share_files: bool = False) -> ClientPlatform:
    """Classify a User-Agent string. The only place where UA sniffing happens."""
    ua = user_agent or ""
    if _IOS_RE.search(ua):
        os_name = "ios"
    elif _ANDROID_RE.search(ua):
        os_name = "android"
    else:
        os_name = "desktop"

    if os_name == "ios" and _CHROME_IOS_RE.search(ua):
        browser = "chrome"
    elif os_name == "ios" and _FIREFOX_IOS_RE.search(ua):
        browser = "firefox"
    elif "Firefox/" in ua:
        browser = "firefox"
    elif "Chrome/" in ua:
        browser = "chrome"
    elif "Safari/" in ua:
        browser = "safari"
    else:
        browser = "other"

    return ClientPlatform(
        os=os_name,
        browser=browser,
        in_app=bool(_IN_APP_RE.search(ua)),
        share_available=share_available,
        can_share_files=can_share_files,
    )


@dataclass(frozen=True)
class DeliveryRule:
    name: str
    applies: Callable[[ClientPlatform], bool]
    methods: tuple[DeliveryMethod, ...]
    # a final rule ends the lookup; the share rule only prepends an attempt
    final: bool = True


DELIVERY_TABLE: tuple[DeliveryRule, ...] = (
    DeliveryRule(
        "native-share",
        lambda p: p.is_mobile and p.share_available and not p.in_app and p.can_share_files,
        (DeliveryMethod.NATIVE_SHARE,),
        final=False,
    ),
    DeliveryRule(
        "ios-in-app",
        lambda p: p.os == "ios" and p.in_app,
        (DeliveryMethod.WINDOW_OPEN, DeliveryMethod.NAVIGATE),
    ),
    DeliveryRule(
        "ios-chrome-firefox",
        lambda p: p.os == "ios" and p.browser in ("chrome", "firefox"),
        (DeliveryMethod.ANCHOR_NEW_TAB,),
    ),
    DeliveryRule(
        "ios-safari",
        lambda p: p.os == "ios",
        (DeliveryMethod.ANCHOR_NEW_TAB,),
    ),
    DeliveryRule(
        "android-in-app",
        lambda p: p.os == "android" and p.in_app,
        (DeliveryMethod.ANCHOR_OPEN_TAB,),
    ),
    DeliveryRule(
        "download",
        lambda p: True,
        (DeliveryMethod.ANCHOR_DOWNLOAD,),
    ),
)


def matching_rules(platform: ClientPlatform) -> list[DeliveryRule]:
    rules = []
    for rule in DELIVERY_TABLE:
        if rule.applies(platform):
            rules.append(rule)
            if rule.final:
                break
    return rules


def plan_delivery(platform: ClientPlatform) -> tuple[DeliveryMethod, ...]:
    """Ordered methods to try for `platform`."""
    methods: list[DeliveryMethod] = []
    for rule in matching_rules(platform):
        methods.extend(rule.methods)
    return tuple(methods)


@dataclass(frozen=True)
class Anchor:
    href: str
    target: Optional[str] = None
    rel: Optional[str] = None
    download: Optional[str] = None


class Browser(Protocol):
    """What the contact-save flow needs from the visitor's browser."""

    async def share_file(self, data: str, filename: str, mime_type: str, title: str) -> None: ...

    def create_object_url(self, data: str, mime_type: str) -> str: ...

    def revoke_object_url(self, url: str) -> None: ...

    def open_window(self, url: str, target: str = "_blank") -> bool: ...

    def set_location(self, url: str) -> None: ...

    def click_anchor(self, anchor: Anchor) -> None: ...

    def schedule(self, delay: float, callback: Callable[[], None]) -> None: ...


@dataclass
class DeliveryResult:
    method: Optional[DeliveryMethod] = None
    cancelled: bool = False
    attempts: list[DeliveryMethod] = field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return self.method is not None or self.cancelled


class ContactDelivery:
    """Runs the fallback chain for one generated document."""

    def __init__(
        self,
        browser: Browser,
        platform: ClientPlatform,
        *,
        revoke_delay: float = 10.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self.browser = browser
        self.platform = platform
        self.revoke_delay = revoke_delay
        self.logger = logger or logging.getLogger(__name__)
        self._object_url: Optional[str] = None

    def _url(self, document: str) -> str:
        if self._object_url is None:
            self._object_url = self.browser.create_object_url(document, VCARD_MIME)
        return self._object_url

    def _schedule_revoke(self) -> None:
        url = self._object_url
        if url is None:
            return
        self._object_url = None
        self.browser.schedule(self.revoke_delay, lambda: self.browser.revoke_object_url(url))

    async def _attempt(self, method: DeliveryMethod, document: str, filename: str) -> None:
        if method is DeliveryMethod.NATIVE_SHARE:
            title = filename[:-4] if filename.endswith(".vcf") else filename
            await self.browser.share_file(document, filename, VCARD_MIME, title)
        elif method is DeliveryMethod.WINDOW_OPEN:
            if not self.browser.open_window(self._url(document), "_blank"):
                raise DeliveryError("popup blocked")
        elif method is DeliveryMethod.NAVIGATE:
            self.browser.set_location(self._url(document))
        elif method is DeliveryMethod.ANCHOR_NEW_TAB:
            rel = "noopener noreferrer" if self.platform.browser in ("chrome", "firefox") else None
            self.browser.click_anchor(Anchor(href=self._url(document), target="_blank", rel=rel))
        elif method is DeliveryMethod.ANCHOR_DOWNLOAD:
            self.browser.click_anchor(Anchor(href=self._url(document), download=filename))
        elif method is DeliveryMethod.ANCHOR_OPEN_TAB:
            # embedded Android browsers ignore forced downloads
            self.browser.click_anchor(Anchor(href=self._url(document), target="_blank"))
        else:  # pragma: no cover
            raise DeliveryError(f"unsupported method {method}")

    async def deliver(self, document: str, filename: str) -> DeliveryResult:
        result = DeliveryResult()
        try:
            for method in plan_delivery(self.platform):
                result.attempts.append(method)
                try:
                    await self._attempt(method, document, filename)
                except ShareCancelledError:
                    result.cancelled = True
                    self.logger.info("delivery.cancelled", extra={"method": method.value})
                    return result
                except Exception as exc:
                    self.logger.warning(
                        "delivery.attempt_failed",
                        extra={"method": method.value, "error": str(exc)},
                    )
                    continue
                result.method = method
                return result
            self.logger.warning("delivery.exhausted", extra={"attempts": [m.value for m in result.attempts]})
            return result
        finally:
            self._schedule_revoke()


async def save_contact(
    profile: ProfileView,
    browser: Browser,
    platform: ClientPlatform,
    photo_base64: str | None = None,
    *,
    photo_type: str = "JPEG",
    fold_photo: bool = True,
    revoke_delay: float = 10.0,
    logger: logging.Logger | None = None,
) -> DeliveryResult:
    """Build the contact file for `profile` and push it to the visitor."""
    document = encode(profile, fold_photo=fold_photo, photo_base64=photo_base64, photo_type=photo_type)
    delivery = ContactDelivery(browser, platform, revoke_delay=revoke_delay, logger=logger)
    return await delivery.deliver(document, vcard_filename(profile.display_name))

"""
Playwright Loader - snapshot live pages into page bundles.

A snapshot walks every frame of a Playwright page and serializes its DOM,
writing each open shadow root as a declarative
``<template shadowrootmode="open">`` child of its host. Current form state
(typed values, checked boxes, selected options) is written into the
markup. The result is a page bundle that ``build_window`` turns into a
recordable Window.

Closed shadow roots are not reachable from page scripts and are left out.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from action_recorder.config.settings import BrowserSettings
from action_recorder.exceptions import SnapshotError

logger = logging.getLogger(__name__)

SERIALIZE_JS = r"""
() => {
    const VOID = new Set(['area', 'base', 'br', 'col', 'embed', 'hr', 'img', 'input',
                          'link', 'meta', 'param', 'source', 'track', 'wbr']);
    const SKIP = new Set(['script', 'noscript']);
    const text = (s) => s.replace(/&/g, '&amp;').replace(/</g, '&lt;').replace(/>/g, '&gt;');
    const attr = (s) => s.replace(/&/g, '&amp;').replace(/"/g, '&quot;');

    const attributes = (el) => {
        const out = {};
        for (const a of el.attributes) out[a.name] = a.value;
        const tag = el.localName;
        if (tag === 'input') {
            const type = (el.type || 'text').toLowerCase();
            if (type === 'checkbox' || type === 'radio') {
                if (el.checked) out.checked = ''; else delete out.checked;
            } else if (type !== 'file') {
                out.value = el.value;
            }
        } else if (tag === 'option') {
            if (el.selected) out.selected = ''; else delete out.selected;
        }
        return out;
    };

    const children = (node) => Array.from(node.childNodes).map(serialize).join('');

    const serialize = (node) => {
        if (node.nodeType === Node.TEXT_NODE) {
            const parent = node.parentNode && node.parentNode.localName;
            return parent === 'style' ? node.data : text(node.data);
        }
        if (node.nodeType === Node.COMMENT_NODE) return '<!--' + node.data + '-->';
        if (node.nodeType !== Node.ELEMENT_NODE) return '';
        const tag = node.localName;
        if (SKIP.has(tag)) return '';
        let out = '<' + tag;
        for (const [name, value] of Object.entries(attributes(node))) {
            out += ' ' + name + '="' + attr(value) + '"';
        }
        out += '>';
        if (VOID.has(tag)) return out;
        if (node.shadowRoot) {
            out += '<template shadowrootmode="open">' + children(node.shadowRoot) + '</template>';
        }
        if (tag === 'textarea') out += text(node.value);
        else if (tag === 'template') out += children(node.content);
        else out += children(node);
        return out + '</' + tag + '>';
    };

    return '<!DOCTYPE html>' + serialize(document.documentElement);
}
"""

FRAME_INDEX_JS = """
(el) => Array.from(document.querySelectorAll('iframe, frame')).indexOf(el)
"""


async def snapshot_frame(frame: Any) -> Dict[str, Any]:
    """
    Serialize one Playwright frame and, recursively, its child frames.

    Args:
        frame: Playwright Frame

    Returns:
        Page bundle for the frame
    """
    html = await frame.evaluate(SERIALIZE_JS)
    bundle: Dict[str, Any] = {"url": frame.url, "html": html}
    if frame.name:
        bundle["name"] = frame.name

    frames = []
    for child in frame.child_frames:
        if child.is_detached():
            continue
        element = await child.frame_element()
        index = await frame.evaluate(FRAME_INDEX_JS, element)
        if index < 0:
            # Frame elements inside shadow roots are not reachable by index
            logger.debug(f"Skipping frame not in the light DOM: {child.url}")
            continue
        child_bundle = await snapshot_frame(child)
        child_bundle["index"] = index
        frames.append(child_bundle)

    if frames:
        bundle["frames"] = sorted(frames, key=lambda f: f["index"])
    return bundle


async def snapshot_page(page: Any) -> Dict[str, Any]:
    """
    Snapshot a Playwright page into a page bundle.

    Raises:
        SnapshotError: If a frame cannot be serialized
    """
    try:
        bundle = await snapshot_frame(page.main_frame)
    except SnapshotError:
        raise
    except Exception as e:
        raise SnapshotError(f"Failed to snapshot page: {e}", url=page.url)
    logger.info(f"Snapshot of {page.url} taken")
    return bundle


async def capture_url(url: str, settings: Optional[BrowserSettings] = None) -> Dict[str, Any]:
    """
    Open a URL in a fresh browser and snapshot it.

    Args:
        url: Page to open
        settings: Browser settings (defaults apply when omitted)

    Returns:
        Page bundle

    Raises:
        SnapshotError: If the browser cannot be launched or the page cannot be loaded
    """
    settings = settings or BrowserSettings()
    from playwright.async_api import async_playwright

    async with async_playwright() as p:
        launcher = getattr(p, settings.browser_type)
        try:
            browser = await launcher.launch(headless=settings.headless)
        except Exception as e:
            raise SnapshotError(f"Failed to launch browser: {e}", url=url)
        try:
            page = await browser.new_page()
            try:
                await page.goto(url, timeout=settings.timeout_ms, wait_until=settings.wait_until)
            except Exception as e:
                raise SnapshotError(f"Failed to navigate to {url}: {e}", url=url)
            return await snapshot_page(page)
        finally:
            await browser.close()


def save_bundle(bundle: Dict[str, Any], path: Union[str, Path]) -> Path:
    """Write a page bundle as YAML."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(bundle, f, sort_keys=False, allow_unicode=True)
    return path

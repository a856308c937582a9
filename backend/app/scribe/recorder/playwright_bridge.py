"""
Playwright Page Bridge

In-page collaborator backed by Playwright. It injects a DOM listener
into each registered page and forwards captured events through an
exposed binding. Page close and main-frame navigation are reported as
tab lifecycle events so the session manager can stop or re-arm.
"""

import logging
from typing import Dict, List, Any, Optional, Callable, Awaitable

from playwright.async_api import Page, Frame, Error as PlaywrightError

from ..core.dynamic_values import stable_classes
from ..errors import CollaboratorUnavailableError

# Configure logging
logger = logging.getLogger(__name__)


RECORDER_BINDING = "__scribeRecord"

LISTENER_SCRIPT = """
(config) => {
  if (window.__scribe) {
    window.__scribe.start(config);
    return true;
  }

  const TEST_ATTRS = ['data-testid', 'data-test', 'data-cy', 'data-qa', 'data-automation'];
  const state = { active: false, paused: false, sessionId: null, tabId: null, pending: new Map() };
  let counter = 0;

  const cssPath = (el) => {
    const parts = [];
    while (el && el.nodeType === 1 && parts.length < 5) {
      if (el.id) { parts.unshift('#' + CSS.escape(el.id)); break; }
      let part = el.tagName.toLowerCase();
      const siblings = el.parentElement
        ? Array.from(el.parentElement.children).filter(c => c.tagName === el.tagName) : [];
      if (siblings.length > 1) part += ':nth-of-type(' + (siblings.indexOf(el) + 1) + ')';
      parts.unshift(part);
      el = el.parentElement;
    }
    return parts.join(' > ');
  };

  const xpath = (el) => {
    const parts = [];
    while (el && el.nodeType === 1) {
      let index = 1;
      for (let s = el.previousElementSibling; s; s = s.previousElementSibling) {
        if (s.tagName === el.tagName) index++;
      }
      parts.unshift(el.tagName.toLowerCase() + '[' + index + ']');
      el = el.parentElement;
    }
    return '/' + parts.join('/');
  };

  const describe = (el) => {
    const attributes = {};
    for (const attr of Array.from(el.attributes || [])) attributes[attr.name] = attr.value;
    const testAttributes = {};
    for (const name of TEST_ATTRS) if (el.hasAttribute(name)) testAttributes[name] = el.getAttribute(name);
    const styles = window.getComputedStyle(el);
    return {
      tagName: el.tagName.toLowerCase(),
      id: el.id || null,
      name: el.getAttribute('name'),
      type: el.getAttribute('type'),
      placeholder: el.getAttribute('placeholder'),
      textContent: (el.textContent || '').trim().slice(0, 100),
      classList: Array.from(el.classList || []),
      attributes,
      testAttributes,
      cssSelector: cssPath(el),
      xpath: xpath(el),
      styles: { animation: styles.animationName, transition: styles.transitionProperty },
    };
  };

  const send = (type, el, extra) => {
    if (!state.active || state.paused) return;
    counter += 1;
    const action = Object.assign({
      id: 'action_' + Date.now() + '_' + counter,
      type,
      timestamp: Date.now(),
      tabId: state.tabId,
      url: window.location.href,
      title: document.title,
      element: el ? describe(el) : null,
    }, extra || {});
    window.__scribeRecord(action);
  };

  const flush = () => {
    for (const [el, timer] of state.pending) {
      clearTimeout(timer);
      send('input', el, { value: el.value });
    }
    state.pending.clear();
  };

  document.addEventListener('click', (e) => send('click', e.target), true);
  document.addEventListener('change', (e) => send('change', e.target, { value: e.target.value }), true);
  document.addEventListener('submit', (e) => send('submit', e.target), true);
  document.addEventListener('keydown', (e) => {
    if (e.key === 'Enter') send('keydown', e.target, { key: e.key });
  }, true);
  document.addEventListener('input', (e) => {
    const el = e.target;
    clearTimeout(state.pending.get(el));
    state.pending.set(el, setTimeout(() => {
      state.pending.delete(el);
      send('input', el, { value: el.value });
    }, 300));
  }, true);

  window.__scribe = {
    start(cfg) {
      state.active = true;
      state.paused = false;
      state.sessionId = cfg.sessionId;
      state.tabId = cfg.tabId;
    },
    pause() { flush(); state.paused = true; },
    resume() { state.paused = false; },
    stop() { flush(); state.active = false; return []; },
  };
  window.__scribe.start(config);
  return true;
}
""".strip()

ActionsCallback = Callable[[int, List[Dict[str, Any]]], Any]
TabRemovedCallback = Callable[[int], Awaitable[Any]]
TabUpdatedCallback = Callable[..., Awaitable[Any]]


class PlaywrightCollaborator:
    """Records interactions on Playwright pages"""

    def __init__(
        self,
        on_actions: Optional[ActionsCallback] = None,
        on_tab_removed: Optional[TabRemovedCallback] = None,
        on_tab_updated: Optional[TabUpdatedCallback] = None,
    ):
        self.on_actions = on_actions
        self.on_tab_removed = on_tab_removed
        self.on_tab_updated = on_tab_updated
        self.pages: Dict[int, Page] = {}
        self._bound: set = set()
        self._next_tab_id = 1

    # ==================== Pages ====================

    def register_page(self, page: Page, tab_id: Optional[int] = None) -> int:
        """Track a page as a recordable tab and wire its lifecycle events."""
        if tab_id is None:
            tab_id = self._next_tab_id
        self._next_tab_id = max(self._next_tab_id, tab_id + 1)
        self.pages[tab_id] = page

        async def on_close(_page):
            self.pages.pop(tab_id, None)
            self._bound.discard(tab_id)
            if self.on_tab_removed:
                await self.on_tab_removed(tab_id)

        async def on_navigated(frame: Frame):
            if frame != page.main_frame or not self.on_tab_updated:
                return
            await self.on_tab_updated(tab_id, url=frame.url, status="complete")

        page.on("close", on_close)
        page.on("framenavigated", on_navigated)
        logger.info(f"Registered page as tab {tab_id}")
        return tab_id

    def tab_id_for(self, page: Page) -> Optional[int]:
        for tab_id, candidate in self.pages.items():
            if candidate is page:
                return tab_id
        return None

    def _page(self, tab_id: int) -> Page:
        page = self.pages.get(tab_id)
        if page is None or page.is_closed():
            raise CollaboratorUnavailableError(f"No open page for tab {tab_id}")
        return page

    async def _on_record(self, source: Dict[str, Any], action: Dict[str, Any]):
        tab_id = self.tab_id_for(source.get("page"))
        if tab_id is None or self.on_actions is None:
            return
        element = action.get("element")
        if element and "stableClasses" not in element:
            element["stableClasses"] = stable_classes(element.get("classList") or [])
        result = self.on_actions(tab_id, [action])
        if hasattr(result, "__await__"):
            await result

    async def _evaluate(self, tab_id: int, expression: str, arg: Any = None) -> Any:
        page = self._page(tab_id)
        try:
            return await page.evaluate(expression, arg)
        except PlaywrightError as e:
            raise CollaboratorUnavailableError(str(e)) from e

    # ==================== Collaborator protocol ====================

    async def start_recording(self, tab_id: int, session_id: str) -> None:
        page = self._page(tab_id)
        if tab_id not in self._bound:
            try:
                await page.expose_binding(RECORDER_BINDING, self._on_record)
            except PlaywrightError as e:
                raise CollaboratorUnavailableError(str(e)) from e
            self._bound.add(tab_id)
        await self._evaluate(tab_id, LISTENER_SCRIPT, {"sessionId": session_id, "tabId": tab_id})
        logger.debug(f"Listener armed on tab {tab_id} for session {session_id}")

    async def pause_recording(self, tab_id: int) -> None:
        await self._evaluate(tab_id, "() => window.__scribe && window.__scribe.pause()")

    async def resume_recording(self, tab_id: int) -> None:
        await self._evaluate(tab_id, "() => window.__scribe && window.__scribe.resume()")

    async def stop_recording(self, tab_id: int) -> List[Dict[str, Any]]:
        result = await self._evaluate(tab_id, "() => window.__scribe ? window.__scribe.stop() : []")
        return result or []

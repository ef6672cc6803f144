"""
Playwright Script Generator - Generates executable scripts from recordings.

Converts a Recording into a Playwright Python script that re-enters every
recorded frame and pierces every recorded shadow root:

- frames are entered with ``frame_locator`` chains built from the
  recorded frame selectors
- open shadow roots are pierced with a small in-page helper that walks the
  recorded host chain and evaluates the inner XPath in each shadow root
- typed values are lifted into an ``INPUT_DATA`` table
- assertions become ``expect`` checks
"""

from typing import Dict, List, Optional

from action_recorder.config.settings import ExportSettings
from action_recorder.recorder.models import PASSWORD_MASK, Action, ActionKind, AssertionType, Recording

SHADOW_HELPER_JS = (
    "([hosts, inner]) => {\n"
    "    const find = (xp, root) => {\n"
    "        const rel = xp.startsWith('/') ? '.' + xp : xp;\n"
    "        return document.evaluate(rel, root, null, XPathResult.FIRST_ORDERED_NODE_TYPE, null).singleNodeValue;\n"
    "    };\n"
    "    let el = document.evaluate(hosts[0], document, null, XPathResult.FIRST_ORDERED_NODE_TYPE, null).singleNodeValue;\n"
    "    for (const xp of hosts.slice(1).concat([inner])) {\n"
    "        if (!el || !el.shadowRoot) return null;\n"
    "        el = find(xp, el.shadowRoot);\n"
    "    }\n"
    "    return el;\n"
    "}"
)


def playwright_selector(xpath: Optional[str]) -> Optional[str]:
    """Prefix XPath expressions Playwright would not detect on its own."""
    if not xpath:
        return None
    if xpath.startswith("(") or (xpath.startswith("/") and not xpath.startswith("//")):
        return f"xpath={xpath}"
    return xpath


class PlaywrightScriptGenerator:
    """
    Generates Playwright Python scripts from recordings.

    Example:
        >>> generator = PlaywrightScriptGenerator()
        >>> script = generator.generate(recording)
        >>> print(script)
    """

    def __init__(
        self,
        async_mode: bool = True,
        include_comments: bool = True,
        include_timing: bool = True,
        browser_type: str = "chromium",
        headless: bool = False,
        min_delay_ms: int = 500,
        parametrize_inputs: bool = True,
    ):
        """
        Initialize the generator.

        Args:
            async_mode: Generate async code (recommended)
            include_comments: Add comments explaining each step
            include_timing: Include wait times between actions
            browser_type: Browser to use (chromium, firefox, webkit)
            headless: Run in headless mode
            min_delay_ms: Minimum recorded gap that becomes a wait
            parametrize_inputs: Lift typed values into INPUT_DATA
        """
        self._async = async_mode
        self._comments = include_comments
        self._timing = include_timing
        self._browser = browser_type
        self._headless = headless
        self._min_delay = min_delay_ms
        self._parametrize = parametrize_inputs
        self._input_map: Dict[int, str] = {}
        self._input_data: Dict[str, str] = {}

    @classmethod
    def from_settings(cls, settings: ExportSettings) -> "PlaywrightScriptGenerator":
        return cls(
            async_mode=settings.async_mode,
            include_comments=settings.include_comments,
            browser_type=settings.browser_type,
            headless=settings.headless,
            parametrize_inputs=settings.parametrize_inputs,
        )

    def generate(self, recording: Recording) -> str:
        """
        Generate a Playwright script from a recording.

        Args:
            recording: The recording to convert

        Returns:
            Python script as a string
        """
        actions = list(recording.actions)
        self._analyze_inputs(actions)
        return self._render(recording, actions, sync=not self._async)

    def _analyze_inputs(self, actions: List[Action]) -> None:
        """Assign an INPUT_DATA variable to every typed or selected value."""
        self._input_map = {}
        self._input_data = {}
        if not self._parametrize:
            return
        for i, action in enumerate(actions):
            if action.kind not in (ActionKind.INPUT, ActionKind.SELECT) or action.value is None:
                continue
            hint = "input"
            if action.element:
                hint = action.element.name or action.element.placeholder or action.element.id or "input"
            hint = "".join(c if c.isalnum() else "_" for c in hint).strip("_").lower() or "input"
            var = f"step_{i + 1}_{hint}"
            self._input_map[i] = var
            self._input_data[var] = action.value

    def _render(self, recording: Recording, actions: List[Action], sync: bool) -> str:
        aw = "" if sync else "await "
        df = "def" if sync else "async def"
        lines = []

        lines.append('"""')
        lines.append(f"Recorded script: {recording.name}")
        if recording.url:
            lines.append(f"Start URL: {recording.url}")
        lines.append(f"Actions: {len(actions)}")
        lines.append('"""')
        lines.append("")

        if sync:
            lines.append("import time")
            lines.append("from playwright.sync_api import sync_playwright, expect")
        else:
            lines.append("import asyncio")
            lines.append("from playwright.async_api import async_playwright, expect")
        lines.append("")

        if self._input_data:
            lines.append("# Test Data - Parametrized Inputs")
            lines.append("INPUT_DATA = {")
            for k, v in self._input_data.items():
                suffix = "  # masked at capture time" if v == PASSWORD_MASK else ""
                lines.append(f'    "{k}": "{self._escape_string(v)}",{suffix}')
            lines.append("}")
            lines.append("")

        lines.append(f"SHADOW_HELPER_JS = {SHADOW_HELPER_JS!r}")
        lines.append("")
        lines.append("")
        lines.append(f"{df} find_in_shadow(frame, hosts, inner):")
        lines.append('    """Walk the shadow host chain and return the inner element."""')
        lines.append(f"    handle = {aw}frame.evaluate_handle(SHADOW_HELPER_JS, [hosts, inner])")
        lines.append("    element = handle.as_element()")
        lines.append("    if element is None:")
        lines.append('        raise RuntimeError(f"Shadow DOM element not found: {inner}")')
        lines.append("    return element")
        lines.append("")
        lines.append("")
        lines.append(f"{df} enter_frames(page, selectors):")
        lines.append('    """Follow frame selectors from the main frame down."""')
        lines.append("    frame = page.main_frame")
        lines.append("    for selector in selectors:")
        lines.append(f"        element = {aw}frame.wait_for_selector(selector)")
        lines.append(f"        frame = {aw}element.content_frame()")
        lines.append("    return frame")
        lines.append("")
        lines.append("")
        lines.append(f"{df} perform_action(scope, action_type, selectors, **kwargs):")
        lines.append('    """Perform action with fallback selectors."""')
        lines.append("    last_error = None")
        lines.append("    for selector in selectors:")
        lines.append("        loc = scope.locator(selector).first")
        lines.append("        try:")
        lines.append("            if action_type == 'click':")
        lines.append(f"                {aw}loc.click(timeout=5000)")
        lines.append("            elif action_type == 'fill':")
        lines.append(f"                {aw}loc.fill(kwargs['value'], timeout=5000)")
        lines.append("            elif action_type == 'select':")
        lines.append(f"                {aw}loc.select_option(kwargs['value'], timeout=5000)")
        lines.append("            elif action_type == 'check':")
        lines.append(f"                {aw}loc.check(timeout=5000)")
        lines.append("            elif action_type == 'uncheck':")
        lines.append(f"                {aw}loc.uncheck(timeout=5000)")
        lines.append("            elif action_type == 'press':")
        lines.append(f"                {aw}loc.press(kwargs['key'], timeout=5000)")
        lines.append("            return loc")
        lines.append("        except Exception as e:")
        lines.append("            last_error = e")
        lines.append("    raise RuntimeError(f'No selector matched: {selectors}') from last_error")
        lines.append("")
        lines.append("")

        lines.append(f"{df} main():")
        if sync:
            lines.append("    with sync_playwright() as p:")
        else:
            lines.append("    async with async_playwright() as p:")
        lines.append(f"        browser = {aw}p.{self._browser}.launch(headless={self._headless}, slow_mo=100)")
        lines.append(f"        context = {aw}browser.new_context()")
        lines.append(f"        page = {aw}context.new_page()")
        lines.append("        page.set_default_timeout(30000)")
        lines.append("")
        if recording.url:
            lines.append(f'        {aw}page.goto("{self._escape_string(recording.url)}")')
            lines.append("")

        prev_timestamp = 0
        for i, action in enumerate(actions):
            for line in self._generate_action(action, i, prev_timestamp, sync):
                lines.append(("        " + line) if line else "")
            prev_timestamp = action.timestamp

        lines.append("        print('Replay completed successfully!')")
        lines.append(f"        {aw}browser.close()")
        lines.append("")
        lines.append("")
        lines.append('if __name__ == "__main__":')
        lines.append("    main()" if sync else "    asyncio.run(main())")
        lines.append("")
        return "\n".join(lines)

    def _scope_expr(self, action: Action) -> str:
        """Locator scope: the page, or a frame_locator chain."""
        scope = "page"
        for frame in action.frame_context:
            selector = frame.selector or f"(//iframe)[{(frame.index or 0) + 1}]"
            scope += f'.frame_locator("{self._escape_string(playwright_selector(selector))}")'
        return scope

    def _generate_action(self, action: Action, index: int, prev_timestamp: int, sync: bool) -> List[str]:
        """Generate code for a single action."""
        lines = []
        aw = "" if sync else "await "
        sleep_func = "time.sleep" if sync else "asyncio.sleep"
        step_num = index + 1

        if self._timing and prev_timestamp > 0:
            delay_ms = action.timestamp - prev_timestamp
            if delay_ms > self._min_delay:
                delay_sec = min(max(delay_ms / 1000, 0.5), 5.0)
                lines.append(f"# Wait {delay_ms}ms (as recorded)")
                lines.append(f"{aw}{sleep_func}({delay_sec:.1f})")

        if action.kind == ActionKind.PAGE_MARKER:
            lines.append(f"# ---- Page: {action.page_name} ----")
            lines.append("")
            return lines

        if self._comments and action.description:
            lines.append(f"# Step {step_num}: {action.description}")
        for frame in action.frame_context:
            if frame.cross_origin_blocked:
                lines.append(f"# NOTE: frame level {frame.index} was not identified; check {frame.selector}")
        for shadow in action.shadow_context:
            if shadow.is_closed:
                lines.append(f"# NOTE: shadow root of <{shadow.host_tag}> is closed; this step needs manual handling")

        value_code = None
        if action.value is not None:
            var = self._input_map.get(index)
            value_code = f'INPUT_DATA["{var}"]' if var else f'"{self._escape_string(action.value)}"'

        if action.shadow_context:
            lines.extend(self._shadow_action(action, value_code, aw))
        else:
            lines.extend(self._located_action(action, value_code, aw))
        lines.append("")
        return lines

    def _located_action(self, action: Action, value_code: Optional[str], aw: str) -> List[str]:
        scope = self._scope_expr(action)
        selectors = [
            playwright_selector(s)
            for s in (action.locator.primary, action.locator.full_path)
            if s
        ] if action.locator else []
        selectors = list(dict.fromkeys(selectors))
        selectors_code = "[" + ", ".join(f'"{self._escape_string(s)}"' for s in selectors) + "]"
        best = f'{scope}.locator("{self._escape_string(selectors[0])}").first' if selectors else scope

        if action.kind == ActionKind.CLICK:
            return [f"{aw}perform_action({scope}, 'click', {selectors_code})"]
        if action.kind == ActionKind.INPUT:
            return [f"{aw}perform_action({scope}, 'fill', {selectors_code}, value={value_code})"]
        if action.kind == ActionKind.SELECT:
            return [f"{aw}perform_action({scope}, 'select', {selectors_code}, value={value_code})"]
        if action.kind == ActionKind.CHECK:
            method = "check" if action.checked else "uncheck"
            return [f"{aw}perform_action({scope}, '{method}', {selectors_code})"]
        if action.kind == ActionKind.KEYPRESS:
            key = self._escape_string(action.key or "Enter")
            return [f"{aw}perform_action({scope}, 'press', {selectors_code}, key=\"{key}\")"]
        if action.kind == ActionKind.ASSERTION:
            if action.assertion_type == AssertionType.TEXT and action.expected_value:
                expected = self._escape_string(action.expected_value)
                return [f'{aw}expect({best}).to_contain_text("{expected}")']
            return [f"{aw}expect({best}).to_be_attached()"]
        return [f"# Unsupported action type: {action.kind.value}"]

    def _shadow_action(self, action: Action, value_code: Optional[str], aw: str) -> List[str]:
        selectors = [playwright_selector(f.selector or f"(//iframe)[{(f.index or 0) + 1}]") for f in action.frame_context]
        hosts = [s.host_locator for s in action.shadow_context]
        inner = action.shadow_context[-1].inner_path
        lines = [
            f"frame = {aw}enter_frames(page, {self._list_code(selectors)})",
            f'element = {aw}find_in_shadow(frame, {self._list_code(hosts)}, "{self._escape_string(inner)}")',
        ]
        if action.kind == ActionKind.CLICK:
            lines.append(f"{aw}element.click()")
        elif action.kind == ActionKind.INPUT:
            lines.append(f"{aw}element.fill({value_code})")
        elif action.kind == ActionKind.SELECT:
            lines.append(f"{aw}element.select_option({value_code})")
        elif action.kind == ActionKind.CHECK:
            lines.append(f"{aw}element.{'check' if action.checked else 'uncheck'}()")
        elif action.kind == ActionKind.KEYPRESS:
            lines.append(f'{aw}element.press("{self._escape_string(action.key or "Enter")}")')
        elif action.kind == ActionKind.ASSERTION:
            if action.assertion_type == AssertionType.TEXT and action.expected_value:
                expected = self._escape_string(action.expected_value)
                lines.append(f'assert "{expected}" in ({aw}element.text_content() or "")')
            else:
                lines.append("assert element is not None")
        return lines

    def _list_code(self, items: List[str]) -> str:
        return "[" + ", ".join(f'"{self._escape_string(s)}"' for s in items) + "]"

    def _escape_string(self, s: Optional[str]) -> str:
        """Escape a string for use in Python code."""
        if s is None:
            return ""
        return s.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")

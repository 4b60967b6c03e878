"""Markup contract of the remote platform.

All role names, labels, texts and selectors the workflow relies on live here
so a change on the platform side only touches this module.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PlatformMarkup:
    """Locators and text markers of the site-generation platform."""

    url_field_role: str = "textbox"
    url_field_name: str = "Paste your link here"
    submit_test_id: str = "import-submit-button"

    paragraph_role: str = "paragraph"
    instructions_field_role: str = "textbox"
    command_trigger: str = "/"
    clone_command_text: str = "Clone Website"

    login_button_role: str = "button"
    login_button_name: str = "Log in"
    email_field_name: str = "name@email.com"
    password_field_name: str = "Type your password here"
    sign_in_button_name: str = "Sign In"

    result_url_marker: str = "/chat/"
    progress_text_selector: str = "h1, h2, h3, div"
    edits_marker_text: str = "Making edits..."
    loading_marker_text: str = "Loading..."
    preview_frame_selector: str = "iframe"

    publish_trigger_selector: str = 'button:has-text("Publish")'
    publish_confirm_selector: str = 'button.w-full:has-text("Publish")'
    live_badge_selector: str = "text=LIVE!"
    published_domain_selector: str = "span.text-blue-500"
    published_scan_selector: str = "span, a, div"
    published_domain_suffix: str = ".dev.animaapp.io"

    def is_result_url(self, url: str) -> bool:
        """Return whether url is the generated project's result page."""
        return self.result_url_marker in url

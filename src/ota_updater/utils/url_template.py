"""Device placeholder substitution for URL templates and progress text."""

from ota_updater.models.config import DEFAULT_PLACEHOLDER


def expand(template: str, device_model: str, placeholder: str = DEFAULT_PLACEHOLDER) -> str:
    """Replace every placeholder occurrence with the device model.

    Args:
        template: URL template or message text
        device_model: Model identifier to substitute
        placeholder: Token to replace (default "[DEVICE]")

    Returns:
        Expanded string; unchanged if the template has no placeholder
    """
    return template.replace(placeholder, device_model)

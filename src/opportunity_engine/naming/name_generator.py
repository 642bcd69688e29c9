"""
Name Generator - Deterministic Opportunity Names.

Builds opportunity names such as ``"Acme Foods - Kaufholds - New Lead
Outreach"`` from an organization, a principal and a context tag.

Templates use two literal placeholders, ``{organization}`` and
``{principal}``. Substitution is a single left-to-right pass: text that
comes from a substituted value is never scanned again, and no other
template syntax exists. Output depends only on the inputs (no dates, no
randomness), so previews shown to the user match what gets persisted.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Mapping, Optional, Union

from opportunity_engine.config.models import NamingConfig
from opportunity_engine.domain.entities import ContextTag, PrincipalRef
from opportunity_engine.domain.value_objects import GeneratedName, NamePreview
from opportunity_engine.validation.payload_validator import ValidationError

logger = logging.getLogger(__name__)

ORGANIZATION_PLACEHOLDER = "{organization}"
PRINCIPAL_PLACEHOLDER = "{principal}"

_PLACEHOLDER_PATTERN = re.compile(r"\{organization\}|\{principal\}")

DEFAULT_TEMPLATES: Dict[ContextTag, str] = {
    tag: f"{ORGANIZATION_PLACEHOLDER} - {PRINCIPAL_PLACEHOLDER} - {tag.label}"
    for tag in ContextTag
    if tag is not ContextTag.CUSTOM
}

PrincipalLike = Union[PrincipalRef, Mapping[str, str]]


def clean_name(value: Optional[str]) -> str:
    """Trim and collapse internal runs of whitespace."""
    return " ".join((value or "").split())


def render_template(template: str, organization_name: str, principal_name: str) -> str:
    """Substitute both placeholders in one pass."""
    values = {
        ORGANIZATION_PLACEHOLDER: organization_name,
        PRINCIPAL_PLACEHOLDER: principal_name,
    }
    return _PLACEHOLDER_PATTERN.sub(lambda m: values[m.group(0)], template)


def resolve_context_tag(context_tag: Union[ContextTag, str]) -> ContextTag:
    """Coerce a raw tag value into the closed ContextTag set."""
    if isinstance(context_tag, ContextTag):
        return context_tag
    try:
        return ContextTag(context_tag)
    except ValueError:
        raise ValidationError(
            f"Unknown context tag: {context_tag!r}", field="context"
        ) from None


def generate_name(
    organization_name: str,
    principal_name: str,
    context_tag: Union[ContextTag, str],
    custom_template: Optional[str] = None,
    templates: Optional[Mapping[ContextTag, str]] = None,
) -> GeneratedName:
    """
    Generate an opportunity name.

    Args:
        organization_name: Customer organization display name
        principal_name: Principal (brand owner) display name
        context_tag: Sales context selecting the default template
        custom_template: Template used verbatim instead of the default
        templates: Per-context overrides of DEFAULT_TEMPLATES

    Returns:
        GeneratedName with the name and the template it was built from

    Raises:
        ValidationError: Empty names, unknown tag, or ``custom`` without
            a template
    """
    organization = clean_name(organization_name)
    if not organization:
        raise ValidationError("Organization name is required", field="organization_name")

    principal = clean_name(principal_name)
    if not principal:
        raise ValidationError("Principal name is required", field="principal_name")

    tag = resolve_context_tag(context_tag)

    if custom_template is not None and custom_template.strip():
        template = custom_template
    elif tag is ContextTag.CUSTOM:
        raise ValidationError(
            "A custom template is required for the custom context", field="name_template"
        )
    else:
        template = (templates or {}).get(tag) or DEFAULT_TEMPLATES[tag]

    return GeneratedName(
        name=render_template(template, organization, principal),
        template=template,
    )


def generate_batch_name_previews(
    organization_name: str,
    principals: Iterable[PrincipalLike],
    context_tag: Union[ContextTag, str],
    custom_template: Optional[str] = None,
    templates: Optional[Mapping[ContextTag, str]] = None,
) -> List[NamePreview]:
    """
    Generate one preview per principal, in the order given.

    Pure and side-effect free; safe to call on every form change.
    """
    previews: List[NamePreview] = []
    for principal in principals:
        ref = _as_principal_ref(principal)
        generated = generate_name(
            organization_name, ref.name, context_tag, custom_template, templates
        )
        previews.append(
            NamePreview(
                principal_id=ref.id,
                principal_name=ref.name,
                generated_name=generated.name,
                name_template=generated.template,
            )
        )
    return previews


def _template_regex(template: str) -> "re.Pattern[str]":
    parts: List[str] = []
    seen = set()
    position = 0
    for match in _PLACEHOLDER_PATTERN.finditer(template):
        parts.append(re.escape(template[position:match.start()]))
        key = match.group(0)[1:-1]
        parts.append(f"(?P={key})" if key in seen else f"(?P<{key}>.+?)")
        seen.add(key)
        position = match.end()
    parts.append(re.escape(template[position:]))
    return re.compile("".join(parts), re.DOTALL)


def parse_auto_generated_name(name: str, template: Optional[str]) -> Optional[Dict[str, str]]:
    """
    Recover the substituted values from a generated name.

    Returns:
        Mapping of placeholder key (``organization``, ``principal``) to
        value, or None if the name does not fit the template
    """
    if not template or name is None:
        return None
    # Padding and doubled spaces are tolerated on both sides
    match = _template_regex(clean_name(template)).fullmatch(clean_name(name))
    if match is None:
        return None
    return {key: value.strip() for key, value in match.groupdict().items()}


def is_auto_generated_name(name: str, template: Optional[str]) -> bool:
    """True if ``name`` has the shape ``template`` produces."""
    return parse_auto_generated_name(name, template) is not None


def update_auto_generated_name(
    current_name: str,
    template: Optional[str],
    organization_name: Optional[str] = None,
    principal_name: Optional[str] = None,
    context_tag: Union[ContextTag, str, None] = None,
    templates: Optional[Mapping[ContextTag, str]] = None,
) -> GeneratedName:
    """
    Re-render an auto-generated name after some of its inputs changed.

    Organization and principal that are not supplied are recovered from
    ``current_name`` by parsing it against ``template``. A new
    ``context_tag`` switches to that context's default template; without
    one (or for ``custom``) ``template`` itself is reused.

    If ``current_name`` does not parse, a fresh name is generated from the
    supplied values alone.

    Raises:
        ValidationError: A name component is missing after the overlay,
            or there is neither a context tag nor a template to render
    """
    parsed = parse_auto_generated_name(current_name, template) or {}
    if not parsed:
        logger.debug(f"{current_name!r} does not fit its template; generating a fresh name")

    organization = (
        organization_name if organization_name is not None else parsed.get("organization", "")
    )
    principal = principal_name if principal_name is not None else parsed.get("principal", "")

    tag = resolve_context_tag(context_tag) if context_tag is not None else ContextTag.CUSTOM
    if tag is ContextTag.CUSTOM:
        if not template:
            raise ValidationError(
                "A context tag or template is required to rename", field="context"
            )
        return generate_name(organization, principal, tag, custom_template=template)
    return generate_name(organization, principal, tag, templates=templates)


def _as_principal_ref(principal: PrincipalLike) -> PrincipalRef:
    if isinstance(principal, PrincipalRef):
        return principal
    return PrincipalRef.model_validate(principal)


class NameGenerator:
    """Name generation bound to configured templates and limits."""

    def __init__(self, config: Optional[NamingConfig] = None) -> None:
        self.config = config or NamingConfig()

    def template_for(self, context_tag: Union[ContextTag, str]) -> Optional[str]:
        """Default template for a tag, after config overrides. None for custom."""
        tag = resolve_context_tag(context_tag)
        return self.config.templates.get(tag) or DEFAULT_TEMPLATES.get(tag)

    def generate(
        self,
        organization_name: str,
        principal_name: str,
        context_tag: Union[ContextTag, str],
        custom_template: Optional[str] = None,
    ) -> GeneratedName:
        """generate_name() with configured templates and a length check."""
        if (
            custom_template is not None
            and len(custom_template) > self.config.max_template_length
        ):
            raise ValidationError(
                f"name_template exceeds {self.config.max_template_length} characters",
                field="name_template",
            )

        generated = generate_name(
            organization_name,
            principal_name,
            context_tag,
            custom_template,
            self.config.templates,
        )
        return self._check_length(generated)

    def update_name(
        self,
        current_name: str,
        template: Optional[str],
        organization_name: Optional[str] = None,
        principal_name: Optional[str] = None,
        context_tag: Union[ContextTag, str, None] = None,
    ) -> GeneratedName:
        """update_auto_generated_name() with configured templates and a length check."""
        generated = update_auto_generated_name(
            current_name,
            template,
            organization_name,
            principal_name,
            context_tag,
            self.config.templates,
        )
        return self._check_length(generated)

    def _check_length(self, generated: GeneratedName) -> GeneratedName:
        if len(generated.name) > self.config.max_name_length:
            raise ValidationError(
                f"Generated name exceeds {self.config.max_name_length} characters",
                field="name",
            )
        return generated

    def generate_previews(
        self,
        organization_name: str,
        principals: Iterable[PrincipalLike],
        context_tag: Union[ContextTag, str],
        custom_template: Optional[str] = None,
    ) -> List[NamePreview]:
        """Previews for every principal, in order, using configured templates."""
        previews = []
        for principal in principals:
            previews.append(
                self.preview(organization_name, principal, context_tag, custom_template)
            )
        logger.debug(f"Generated {len(previews)} name previews for {organization_name!r}")
        return previews

    def preview(
        self,
        organization_name: str,
        principal: PrincipalLike,
        context_tag: Union[ContextTag, str],
        custom_template: Optional[str] = None,
    ) -> NamePreview:
        """Preview for a single principal."""
        ref = _as_principal_ref(principal)
        generated = self.generate(organization_name, ref.name, context_tag, custom_template)
        return NamePreview(
            principal_id=ref.id,
            principal_name=ref.name,
            generated_name=generated.name,
            name_template=generated.template,
        )

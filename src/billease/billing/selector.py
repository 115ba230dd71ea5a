from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..domain.models import Product
from .errors import CategoryRequired, NewCategoryNameRequired


ADD_NEW_CATEGORY = "Add New Category"
DEFAULT_GROUP: Optional[str] = None


@dataclass(frozen=True)
class ComboboxOption:
    value: str
    label: str
    group: Optional[str] = None


OptionGroup = Tuple[Optional[str], List[ComboboxOption]]


def matches(option: ComboboxOption, query: str) -> bool:
    """Case-insensitive substring match against the option label."""
    return query.lower() in option.label.lower()


def filter_options(options: Iterable[ComboboxOption], query: str) -> List[ComboboxOption]:
    q = (query or "").strip()
    if not q:
        return list(options)
    return [opt for opt in options if matches(opt, q)]


def group_options(options: Iterable[ComboboxOption], *, sort_groups: bool = False) -> List[OptionGroup]:
    """Bucket options by group, keeping option order inside each group.

    Groups come out in first-seen order, or alphabetically when
    ``sort_groups`` is set. Ungrouped options share the ``None`` group, which
    sorts first.
    """
    groups: Dict[Optional[str], List[ComboboxOption]] = {}
    for opt in options:
        groups.setdefault(opt.group or DEFAULT_GROUP, []).append(opt)
    items = list(groups.items())
    if sort_groups:
        items.sort(key=lambda kv: (kv[0] is not None, kv[0] or ""))
    return items


def product_options(products: Iterable[Product], currency_symbol: str = "") -> List[ComboboxOption]:
    return [
        ComboboxOption(value=p.id, label=p.label(currency_symbol), group=p.category)
        for p in products
    ]


def category_options(categories: Iterable[str]) -> List[ComboboxOption]:
    """Category picker entries followed by the "Add New Category" sentinel."""
    opts = [ComboboxOption(value=c, label=c) for c in categories if c and c != ADD_NEW_CATEGORY]
    opts.append(ComboboxOption(value=ADD_NEW_CATEGORY, label=ADD_NEW_CATEGORY))
    return opts


def resolve_category(selected: Optional[str], new_category_name: Optional[str] = None) -> str:
    """Final category value for the catalog editor on submit."""
    choice = (selected or "").strip()
    if choice == ADD_NEW_CATEGORY:
        typed = (new_category_name or "").strip()
        if not typed:
            raise NewCategoryNameRequired()
        return typed
    if not choice:
        raise CategoryRequired()
    return choice


class Selector:
    """Searchable, grouped picker with optional free-text entries.

    Presentation state (query, open flag) is kept here; the resolved value
    is whatever the last selection produced.
    """

    def __init__(
        self,
        options: Sequence[ComboboxOption],
        *,
        allow_custom_value: bool = False,
        sort_groups: bool = False,
        placeholder: str = "Select option...",
        value: str = "",
    ) -> None:
        self.options = list(options)
        self.allow_custom_value = allow_custom_value
        self.sort_groups = sort_groups
        self.placeholder = placeholder
        self.value = value
        self.query = ""
        self.is_open = False

    # ---------- lookup ----------
    def option_for(self, value: str) -> Optional[ComboboxOption]:
        for opt in self.options:
            if opt.value == value:
                return opt
        return None

    @property
    def display_label(self) -> str:
        selected = self.option_for(self.value) if self.value else None
        if selected is not None:
            return selected.label
        if self.allow_custom_value and self.value:
            return self.value
        return self.placeholder

    def visible(self) -> List[ComboboxOption]:
        return filter_options(self.options, self.query)

    def visible_groups(self) -> List[OptionGroup]:
        return group_options(self.visible(), sort_groups=self.sort_groups)

    def custom_entry(self) -> Optional[str]:
        """Value offered as 'Add "<query>"', or None when not applicable."""
        if not self.allow_custom_value:
            return None
        q = self.query.strip()
        if not q:
            return None
        if self.visible():
            return None
        lowered = q.lower()
        if any(opt.label.lower() == lowered or opt.value.lower() == lowered for opt in self.options):
            return None
        return q

    def custom_entry_label(self) -> Optional[str]:
        entry = self.custom_entry()
        return f"Add “{entry}”" if entry is not None else None

    # ---------- interaction ----------
    def open(self) -> None:
        self.is_open = True
        selected = self.option_for(self.value) if self.value else None
        if selected is not None:
            self.query = selected.label
        else:
            self.query = self.value if self.allow_custom_value else ""

    def close(self) -> None:
        self.is_open = False

    def type(self, query: str) -> None:
        self.query = query or ""

    def select(self, value: str) -> str:
        """Pick a listed option by value."""
        opt = self.option_for(value)
        if opt is None:
            raise KeyError(value)
        self.value = opt.value
        self.query = opt.label
        self.close()
        return self.value

    def select_custom(self) -> str:
        """Accept the typed query as a new, unlisted value."""
        entry = self.custom_entry()
        if entry is None:
            raise ValueError("No custom entry is available for the current query")
        self.value = entry
        self.query = entry
        self.close()
        return self.value

    def clear(self) -> None:
        self.value = ""
        self.query = ""

"""Navigation pages derived from the synchronized structure.

Every builder is a pure function of the frozen structure map
({section: sorted page names}). Sections and pages are ordered by plain
code-point comparison so the output does not depend on the locale.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from wikisync.client.sync.types import DerivedPage

NAVIGATION_TEMPLATE_TITLE = "Template:Navigation"
NAVIGATION_REFERENCE = "{{Navigation}}"
SITEMAP_TITLE = "Site Map"
INDEX_TITLE = "Lists"
SIDEBAR_TITLE = "MediaWiki:Sidebar"
MAIN_PAGE_TITLE = "Main Page"

Structure = Mapping[str, Sequence[str]]


def display_name(name: str) -> str:
    """Turn a title segment into readable text."""
    return name.replace("_", " ")


def _page_link(section: str, page: str) -> str:
    return f"* [[{section}/{page}|{display_name(page)}]]\n"


def _listed_sections(structure: Structure, home_section: str | None) -> list[str]:
    return sorted(name for name in structure if name != home_section)


def build_navigation_template() -> str:
    """Navigation box transcluded at the top of generated pages."""
    return (
        '<div class="main-navigation">\n'
        '{| class="wikitable" style="width: 100%; background-color: #f8f9fa; margin: 1em 0;"\n'
        "|-\n"
        '| style="padding: 1em;" |\n'
        f"* [[{MAIN_PAGE_TITLE}|Home]]\n"
        f"* [[{INDEX_TITLE}|All Lists]]\n"
        f"* [[{SITEMAP_TITLE}|Site Map]]\n"
        "|}\n"
        "</div>"
    )


def build_sitemap(structure: Structure, site_name: str, home_section: str | None = None) -> str:
    """Every section with its pages, both sorted."""
    content = f"= {site_name} Site Map =\n\n{NAVIGATION_REFERENCE}\n\n"
    for section in _listed_sections(structure, home_section):
        content += f"== {display_name(section)} ==\n"
        for page in sorted(structure[section]):
            content += _page_link(section, page)
        content += "\n"
    return content


def build_section_page(section: str, pages: Sequence[str], description: str | None = None) -> str:
    """Listing page for one section, optionally led by its description."""
    content = f"= {display_name(section)} =\n\n{NAVIGATION_REFERENCE}\n\n"
    if description:
        content += f"{description}\n\n"
    content += "== Pages in this Section ==\n\n"
    for page in sorted(pages):
        content += _page_link(section, page)
    return content


def build_index(structure: Structure, site_name: str, home_section: str | None = None) -> str:
    """Index of sections with their page counts."""
    content = f"= {site_name} Lists =\n\n{NAVIGATION_REFERENCE}\n\n"
    content += f"This page provides quick access to all major sections of the {site_name}.\n\n"
    for section in _listed_sections(structure, home_section):
        count = len(structure[section])
        content += f"* [[{section}|{display_name(section)}]] ({count} pages)\n"
    return content


def build_sidebar(structure: Structure, home_section: str | None = None) -> str:
    """Sidebar configuration listing the sections."""
    lines = [
        "* navigation",
        "** mainpage|Home",
        f"** {INDEX_TITLE}|All Lists",
        f"** {SITEMAP_TITLE}|Site Map",
        "* Lists",
    ]
    lines.extend(
        f"** {section}|{display_name(section)}"
        for section in _listed_sections(structure, home_section)
    )
    return "\n".join(lines)


def build_main_page(home_content: str) -> str:
    """Main page: navigation box followed by the home section's content."""
    return f"{NAVIGATION_REFERENCE}\n\n{home_content}"


def build_derived_pages(
    structure: Structure,
    site_name: str,
    home_section: str | None = None,
    descriptions: Mapping[str, str | None] | None = None,
) -> list[DerivedPage]:
    """All navigation pages in upload order.

    Order: navigation template, sitemap, one listing per section, index,
    sidebar.
    """
    descriptions = descriptions or {}
    pages = [
        DerivedPage(NAVIGATION_TEMPLATE_TITLE, build_navigation_template()),
        DerivedPage(SITEMAP_TITLE, build_sitemap(structure, site_name, home_section)),
    ]
    for section in sorted(structure):
        pages.append(DerivedPage(
            section,
            build_section_page(section, structure[section], descriptions.get(section)),
        ))
    pages.append(DerivedPage(INDEX_TITLE, build_index(structure, site_name, home_section)))
    pages.append(DerivedPage(SIDEBAR_TITLE, build_sidebar(structure, home_section)))
    return pages

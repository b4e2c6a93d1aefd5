"""
Site generation: turns a site descriptor and its component list into virtual files
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from jinja2 import Environment, PackageLoader, TemplateError, select_autoescape
from markupsafe import Markup

from . import registry
from .errors import GenerationError, ValidationError
from .models import ComponentRecord, PageRecord, SiteDescriptor, VirtualFile

logger = logging.getLogger(__name__)

TARGET_FORMATS = ('html', 'nextjs', 'react', 'astro')
FORMAT_ALIASES = {
    'static-html': 'html',
    'framework-project-A': 'nextjs',
    'framework-project-B': 'astro',
}

# The only wall-clock dependent content of a build; strip it to compare runs
GENERATED_AT_PATTERN = re.compile(r'[ \t]*<!-- generated-at: [^\n]*? -->\n?')

DEFAULT_CONTENT = 'Content goes here'
TITLE_KEYS = ('title', 'heading', 'name')
CONTENT_KEYS = ('content', 'text', 'description', 'subheading')

_SECTION_TEMPLATES = {
    'simple-navbar': 'sections/simple_navbar.html.j2',
    'centered-navbar': 'sections/centered_navbar.html.j2',
    'centered-hero': 'sections/centered_hero.html.j2',
    'split-hero': 'sections/split_hero.html.j2',
    'about-cards': 'sections/about_cards.html.j2',
    'about-image-text': 'sections/about_image_text.html.j2',
    'features-grid': 'sections/features_grid.html.j2',
    'testimonials': 'sections/testimonials.html.j2',
    'contact-form': 'sections/contact_form.html.j2',
    'contact-info': 'sections/contact_info.html.j2',
    'simple-footer': 'sections/simple_footer.html.j2',
    'expanded-footer': 'sections/expanded_footer.html.j2',
}
_PLACEHOLDER_TEMPLATE = 'sections/placeholder.html.j2'

_env = Environment(
    loader=PackageLoader('nexus', 'templates'),
    autoescape=select_autoescape(['html', 'html.j2', 'xml']),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)


@dataclass(frozen=True)
class ProjectLayout:
    """Where each piece of a framework project lives"""

    component_dir: str
    component_ext: str
    component_template: str
    entry_path: str
    entry_template: str
    build_config: Tuple[str, str]
    stylesheet: str
    manifest: Dict[str, Any]
    publish_dir: str
    build_command: str
    dev_url: str
    # (path, template, rendered with the site context?)
    extra_files: Tuple[Tuple[str, str, bool], ...] = field(default_factory=tuple)


PROJECT_LAYOUTS = {
    'nextjs': ProjectLayout(
        component_dir='components',
        component_ext='.js',
        component_template='react/component.jsx.j2',
        entry_path='pages/index.js',
        entry_template='nextjs/index.js.j2',
        build_config=('next.config.js', 'nextjs/next.config.js'),
        stylesheet='styles/globals.css',
        manifest={
            'name': 'nexus-site',
            'version': '0.1.0',
            'private': True,
            'scripts': {
                'dev': 'next dev',
                'build': 'next build',
                'start': 'next start',
                'lint': 'next lint',
            },
            'dependencies': {
                'next': '^14.2.0',
                'react': '^18.2.0',
                'react-dom': '^18.2.0',
            },
            'devDependencies': {
                'eslint': '^8.57.0',
                'eslint-config-next': '^14.2.0',
            },
        },
        publish_dir='out',
        build_command='npm run build',
        dev_url='http://localhost:3000',
        extra_files=(
            ('pages/_app.js', 'nextjs/_app.js', False),
        ),
    ),
    'react': ProjectLayout(
        component_dir='src/components',
        component_ext='.jsx',
        component_template='react/component.jsx.j2',
        entry_path='src/App.jsx',
        entry_template='react/App.jsx.j2',
        build_config=('vite.config.js', 'react/vite.config.js'),
        stylesheet='src/index.css',
        manifest={
            'name': 'nexus-site',
            'version': '0.1.0',
            'private': True,
            'type': 'module',
            'scripts': {
                'dev': 'vite',
                'build': 'vite build',
                'preview': 'vite preview',
            },
            'dependencies': {
                'react': '^18.2.0',
                'react-dom': '^18.2.0',
            },
            'devDependencies': {
                '@vitejs/plugin-react': '^4.2.0',
                'vite': '^5.2.0',
            },
        },
        publish_dir='dist',
        build_command='npm run build',
        dev_url='http://localhost:5173',
        extra_files=(
            ('index.html', 'react/index.html.j2', True),
            ('src/main.jsx', 'react/main.jsx', False),
        ),
    ),
    'astro': ProjectLayout(
        component_dir='src/components',
        component_ext='.astro',
        component_template='astro/component.astro.j2',
        entry_path='src/pages/index.astro',
        entry_template='astro/index.astro.j2',
        build_config=('astro.config.mjs', 'astro/astro.config.mjs'),
        stylesheet='src/styles/global.css',
        manifest={
            'name': 'nexus-site',
            'version': '0.1.0',
            'private': True,
            'type': 'module',
            'scripts': {
                'dev': 'astro dev',
                'start': 'astro dev',
                'build': 'astro build',
                'preview': 'astro preview',
            },
            'dependencies': {
                'astro': '^4.5.0',
            },
        },
        publish_dir='dist',
        build_command='npm run build',
        dev_url='http://localhost:4321',
        extra_files=(
            ('src/layouts/Layout.astro', 'astro/Layout.astro', False),
        ),
    ),
}


def normalize_format(target_format: Optional[str]) -> str:
    """Resolve a format name or alias; unknown formats are a validation error"""
    fmt = FORMAT_ALIASES.get(target_format, target_format or 'html')
    if fmt not in TARGET_FORMATS:
        raise ValidationError(
            f"Unsupported export format '{target_format}'. Use one of: {', '.join(TARGET_FORMATS)}"
        )
    return fmt


def strip_generated_at(text: str) -> str:
    return GENERATED_AT_PATTERN.sub('', text)


def component_identifier(component_type: str) -> str:
    """
    Derive a component identifier from its type tag.

    The first letter of every hyphen/underscore separated word is
    upper-cased and the words are joined: 'simple-navbar' -> 'SimpleNavbar',
    'hero' -> 'Hero'.
    """
    words = [word for word in re.split(r'[^A-Za-z0-9]+', component_type or '') if word]
    name = ''.join(word[0].upper() + word[1:] for word in words)
    if not name:
        return 'Component'
    if name[0].isdigit():
        name = f'Component{name}'
    return name


def _css_class(component_type: str) -> str:
    return re.sub(r'[^a-z0-9-]+', '-', (component_type or '').lower()).strip('-') or 'component'


def _first_value(properties: Dict[str, Any], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = properties.get(key)
        if isinstance(value, (str, int, float)) and str(value).strip():
            return str(value)
    return None


def _render(template_name: str, **context) -> str:
    return _env.get_template(template_name).render(**context)


def _raw(template_name: str) -> str:
    source, _, _ = _env.loader.get_source(_env, template_name)
    return source


def render_placeholder(component: ComponentRecord) -> str:
    props = component.properties or {}
    return _render(
        _PLACEHOLDER_TEMPLATE,
        component=component,
        title=_first_value(props, TITLE_KEYS) or 'Component',
        content=_first_value(props, CONTENT_KEYS) or DEFAULT_CONTENT,
    )


def render_section(component: ComponentRecord, site_name: str) -> str:
    """
    Render one component as an HTML section.

    Unknown types, and known types whose properties cannot be rendered,
    degrade to a placeholder block instead of failing the build.
    """
    template_name = _SECTION_TEMPLATES.get(component.type)
    if template_name is None:
        logger.info(
            "No renderer for component type, using placeholder",
            extra={'component_id': component.id, 'component_type': component.type},
        )
        return render_placeholder(component)

    try:
        return _render(template_name, props=component.properties, component=component, site_name=site_name)
    except (TemplateError, TypeError, ValueError, AttributeError) as e:
        logger.warning(
            "Failed to render component %s (%s), using placeholder: %s",
            component.id, component.type, e,
        )
        return render_placeholder(component)


def default_page(site: SiteDescriptor) -> PageRecord:
    """The landing page synthesized when a site has no pages yet"""
    return PageRecord(
        id='home',
        title='Home',
        slug='home',
        content=_render('static/welcome.html.j2', site_name=site.name, description=site.description),
        is_published=True,
    )


def _ordered(components: Optional[Sequence[ComponentRecord]]) -> List[ComponentRecord]:
    return sorted(components or [], key=lambda component: component.order)


def _format_timestamp(generated_at: Optional[datetime]) -> Optional[str]:
    if generated_at is None:
        return None
    return generated_at.isoformat(timespec='seconds')


def _readme(site: SiteDescriptor, publish_dir: str, build_command: str = None, dev_url: str = None) -> str:
    return _render(
        'readme.md.j2',
        site_name=site.name,
        publish_dir=publish_dir,
        build_command=build_command,
        dev_url=dev_url,
    )


def _netlify_toml(publish_dir: str, build_command: str = None) -> str:
    return _render('static/netlify.toml.j2', publish_dir=publish_dir, build_command=build_command)


def generate_static_site(
    site: SiteDescriptor,
    components: Sequence[ComponentRecord],
    generated_at: Optional[datetime] = None,
) -> List[VirtualFile]:
    pages = list(site.pages) or [default_page(site)]
    sections = [Markup(render_section(component, site.name)) for component in _ordered(components)]
    fragments = [(page, _render('static/page.html.j2', page=page)) for page in pages]

    index_html = _render(
        'static/index.html.j2',
        site_name=site.name,
        description=site.description or 'Created with Nexus Website Builder',
        pages=pages,
        sections=sections,
        fragments=[Markup(html) for _, html in fragments],
        generated_at=_format_timestamp(generated_at),
    )

    files = [
        VirtualFile(path='index.html', content=index_html),
        VirtualFile(path='css/styles.css', content=_raw('static/styles.css')),
        VirtualFile(path='js/main.js', content=_raw('static/main.js')),
        VirtualFile(path='images/favicon.svg', content=_raw('static/favicon.svg')),
    ]
    files.extend(
        VirtualFile(path=f'pages/{page.slug}.html', content=html)
        for page, html in fragments
    )
    files.append(VirtualFile(path='netlify.toml', content=_netlify_toml('/')))
    files.append(VirtualFile(path='README.md', content=_readme(site, '/')))
    return files


def _component_names(components: Sequence[ComponentRecord]) -> Dict[str, str]:
    """Map each distinct type to a unique identifier, in first-seen order"""
    names: Dict[str, str] = {}
    taken = set()
    for component in components:
        if component.type in names:
            continue
        base = component_identifier(component.type)
        name, suffix = base, 2
        while name in taken:
            name = f'{base}{suffix}'
            suffix += 1
        names[component.type] = name
        taken.add(name)
    return names


def generate_project(
    site: SiteDescriptor,
    components: Sequence[ComponentRecord],
    target_format: str,
) -> List[VirtualFile]:
    layout = PROJECT_LAYOUTS[target_format]
    ordered = _ordered(components)
    names = _component_names(ordered)

    files = [
        VirtualFile(path='package.json', content=json.dumps(layout.manifest, indent=2) + '\n'),
        VirtualFile(path=layout.build_config[0], content=_raw(layout.build_config[1])),
    ]

    for component_type, name in names.items():
        template = registry.by_type(component_type)
        files.append(VirtualFile(
            path=f'{layout.component_dir}/{name}{layout.component_ext}',
            content=_render(
                layout.component_template,
                name=name,
                category=template.category if template else None,
                css_class=_css_class(component_type),
            ),
        ))

    items = [
        {'name': names[component.type], 'id': component.id, 'props': component.properties}
        for component in ordered
    ]
    context = {
        'site_name': site.name,
        'description': site.description or 'Created with Nexus Website Builder',
        'component_names': list(names.values()),
        'items': items,
    }
    files.append(VirtualFile(path=layout.entry_path, content=_render(layout.entry_template, **context)))

    for path, template_name, rendered in layout.extra_files:
        content = _render(template_name, **context) if rendered else _raw(template_name)
        files.append(VirtualFile(path=path, content=content))

    files.append(VirtualFile(path=layout.stylesheet, content=_raw('static/styles.css')))
    files.append(VirtualFile(path='public/favicon.svg', content=_raw('static/favicon.svg')))
    files.append(VirtualFile(path='netlify.toml', content=_netlify_toml(layout.publish_dir, layout.build_command)))
    files.append(VirtualFile(
        path='README.md',
        content=_readme(site, layout.publish_dir, layout.build_command, layout.dev_url),
    ))
    return files


def generate_site(
    site: SiteDescriptor,
    components: Optional[Sequence[ComponentRecord]] = None,
    target_format: str = 'html',
    generated_at: Optional[datetime] = None,
) -> List[VirtualFile]:
    """
    Generate the deployable file tree for a site.

    Args:
        site: Site metadata and pages
        components: Placed components; rendered in `order`
        target_format: 'html', 'nextjs', 'react' or 'astro' (aliases accepted)
        generated_at: Optional build timestamp, written to a single
            `<!-- generated-at: ... -->` line of index.html

    Returns:
        List of VirtualFile, identical for identical input
    """
    if site is None:
        raise GenerationError('Cannot generate a site without a site descriptor')

    fmt = normalize_format(target_format)

    if fmt == 'html':
        files = generate_static_site(site, components or [], generated_at)
    else:
        files = generate_project(site, components or [], fmt)

    logger.info(
        "Generated %d files for %s (%s)", len(files), site.name, fmt,
        extra={'component_count': len(components or []), 'page_count': len(site.pages)},
    )
    return files

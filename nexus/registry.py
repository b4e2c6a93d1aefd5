"""
Component registry: the static catalog of page sections a site can be built from
"""

import copy
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import ComponentRecord

CATEGORIES = ('navbar', 'hero', 'about', 'content', 'contact', 'footer')


class ComponentTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    category: str
    label: str
    description: str = ''
    default_props: Dict[str, Any] = Field(default_factory=dict)


def _links(*labels: str) -> List[Dict[str, str]]:
    return [{'label': label, 'url': '#'} for label in labels]


_IMAGE = 'https://images.pexels.com/photos/{}/pexels-photo-{}.jpeg?auto=compress&cs=tinysrgb&w=1260&h=750&dpr=2'
_COPYRIGHT = '© My Website. All rights reserved.'

COMPONENT_LIBRARY = (
    ComponentTemplate(
        type='simple-navbar',
        category='navbar',
        label='Simple Navbar',
        description='A clean, minimal navigation bar with logo and links',
        default_props={
            'logo': 'My Website',
            'links': _links('Home', 'Features', 'Pricing', 'Contact'),
            'buttonText': 'Sign Up',
            'buttonUrl': '#',
            'backgroundColor': '#ffffff',
            'textColor': '#000000',
        },
    ),
    ComponentTemplate(
        type='centered-navbar',
        category='navbar',
        label='Centered Navbar',
        description='Navigation bar with centered logo and links on both sides',
        default_props={
            'logo': 'My Website',
            'leftLinks': _links('Home', 'Features'),
            'rightLinks': _links('Pricing', 'Contact'),
            'backgroundColor': '#ffffff',
            'textColor': '#000000',
        },
    ),
    ComponentTemplate(
        type='centered-hero',
        category='hero',
        label='Centered Hero',
        description='A centered hero section with heading, subheading, and CTA button',
        default_props={
            'heading': 'Welcome to My Website',
            'subheading': 'The best platform for your needs',
            'buttonText': 'Get Started',
            'buttonUrl': '#',
            'backgroundImage': _IMAGE.format(3184292, 3184292),
            'overlayColor': 'rgba(0,0,0,0.5)',
            'textColor': '#ffffff',
        },
    ),
    ComponentTemplate(
        type='split-hero',
        category='hero',
        label='Split Hero',
        description='A hero section split into text and image',
        default_props={
            'heading': 'Welcome to My Website',
            'subheading': 'The best platform for your needs',
            'buttonText': 'Get Started',
            'buttonUrl': '#',
            'image': _IMAGE.format(3184325, 3184325),
            'backgroundColor': '#ffffff',
            'textColor': '#000000',
        },
    ),
    ComponentTemplate(
        type='about-cards',
        category='about',
        label='About with Cards',
        description='About section with multiple information cards',
        default_props={
            'heading': 'About Us',
            'cards': [
                {'title': 'Our Mission',
                 'description': 'We strive to provide the best service possible to our customers.',
                 'icon': 'Target'},
                {'title': 'Our Vision',
                 'description': 'To become the leading provider in our industry.',
                 'icon': 'Eye'},
                {'title': 'Our Values',
                 'description': 'Integrity, excellence, and innovation guide everything we do.',
                 'icon': 'Heart'},
            ],
            'backgroundColor': '#f9fafb',
            'textColor': '#111827',
        },
    ),
    ComponentTemplate(
        type='about-image-text',
        category='about',
        label='About with Image',
        description='About section with image and text side by side',
        default_props={
            'heading': 'About Our Company',
            'description': (
                'We are a forward-thinking company dedicated to excellence and innovation. '
                'Our team of experts works tirelessly to ensure we deliver the best products '
                'and services to our customers.'
            ),
            'image': _IMAGE.format(3184339, 3184339),
            'backgroundColor': '#ffffff',
            'textColor': '#000000',
        },
    ),
    ComponentTemplate(
        type='features-grid',
        category='content',
        label='Features Grid',
        description='A grid layout showcasing features or services',
        default_props={
            'heading': 'Our Features',
            'subheading': 'Everything you need to succeed',
            'features': [
                {'title': f'Feature {n}', 'description': f'Description of feature {n}', 'icon': icon}
                for n, icon in enumerate(('Zap', 'Shield', 'Star', 'Bell'), start=1)
            ],
            'backgroundColor': '#ffffff',
            'textColor': '#000000',
        },
    ),
    ComponentTemplate(
        type='testimonials',
        category='content',
        label='Testimonials',
        description='Customer testimonials in a carousel',
        default_props={
            'heading': 'What Our Customers Say',
            'testimonials': [
                {'quote': 'This product has completely transformed our business operations.',
                 'author': 'Jane Doe',
                 'title': 'CEO, Company A',
                 'avatar': _IMAGE.format(415829, 415829)},
                {'quote': 'I cannot imagine running my business without this tool anymore.',
                 'author': 'John Smith',
                 'title': 'Founder, Company B',
                 'avatar': _IMAGE.format(220453, 220453)},
            ],
            'backgroundColor': '#f9fafb',
            'textColor': '#111827',
        },
    ),
    ComponentTemplate(
        type='contact-form',
        category='contact',
        label='Contact Form',
        description='A simple contact form with fields for name, email, and message',
        default_props={
            'heading': 'Contact Us',
            'subheading': "We'd love to hear from you",
            'buttonText': 'Send Message',
            'fields': [
                {'name': 'name', 'label': 'Name', 'type': 'text', 'required': True},
                {'name': 'email', 'label': 'Email', 'type': 'email', 'required': True},
                {'name': 'message', 'label': 'Message', 'type': 'textarea', 'required': True},
            ],
            'backgroundColor': '#ffffff',
            'textColor': '#000000',
        },
    ),
    ComponentTemplate(
        type='contact-info',
        category='contact',
        label='Contact Information',
        description='Display contact information with map and details',
        default_props={
            'heading': 'Get in Touch',
            'address': '123 Main St, City, Country',
            'email': 'contact@example.com',
            'phone': '+1 (555) 123-4567',
            'mapUrl': 'https://www.google.com/maps/embed?pb=!1m18!1m12!1m3!1d12345.67890!2d-73.9857!3d40.7484',
            'backgroundColor': '#f9fafb',
            'textColor': '#111827',
        },
    ),
    ComponentTemplate(
        type='simple-footer',
        category='footer',
        label='Simple Footer',
        description='A simple footer with links and copyright',
        default_props={
            'logo': 'My Website',
            'links': _links('Home', 'About', 'Features', 'Contact'),
            'copyright': _COPYRIGHT,
            'backgroundColor': '#1f2937',
            'textColor': '#ffffff',
        },
    ),
    ComponentTemplate(
        type='expanded-footer',
        category='footer',
        label='Expanded Footer',
        description='An expanded footer with multiple sections of links',
        default_props={
            'logo': 'My Website',
            'sections': [
                {'title': 'Product', 'links': _links('Features', 'Pricing', 'FAQ')},
                {'title': 'Company', 'links': _links('About', 'Team', 'Careers')},
                {'title': 'Resources', 'links': _links('Blog', 'Support', 'Contact')},
            ],
            'copyright': _COPYRIGHT,
            'backgroundColor': '#1f2937',
            'textColor': '#ffffff',
        },
    ),
)

_BY_TYPE = {template.type: template for template in COMPONENT_LIBRARY}


def list_all() -> List[ComponentTemplate]:
    return list(COMPONENT_LIBRARY)


def by_category(category: str) -> List[ComponentTemplate]:
    return [template for template in COMPONENT_LIBRARY if template.category == category]


def by_type(component_type: str) -> Optional[ComponentTemplate]:
    """Look up a template; an unknown type is a normal None result"""
    return _BY_TYPE.get(component_type)


def categories() -> List[str]:
    return list(CATEGORIES)


def new_component(component_type: str, component_id: str = None, order: int = 0) -> ComponentRecord:
    """
    Build a component record seeded with a private copy of the template defaults.

    Unknown types get an empty property set so they render as placeholders.
    """
    template = by_type(component_type)
    properties = copy.deepcopy(template.default_props) if template else {}
    return ComponentRecord(
        id=component_id or f"{component_type}-{uuid.uuid4().hex[:8]}",
        type=component_type,
        order=order,
        properties=properties,
    )

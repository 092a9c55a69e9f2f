"""Marketing site content for IVC Accounting pages."""

from __future__ import annotations

from typing import Any

# ==========================================
# Location landing pages
# ==========================================
#
# Structure:
# slug -> {
#     "name": str,         # Town or county shown in headings
#     "region": str,       # County/area used in the subtitle
#     "title": str,        # Hero heading
#     "subtitle": str,     # Hero subheading
#     "description": str,  # Intro paragraph and meta description
# }

LOCATIONS: dict[str, dict[str, str]] = {
    "london": {
        "name": "London",
        "region": "Greater London",
        "title": "Accountant in London - Personal Service Guaranteed",
        "subtitle": "Serving London businesses with only 50 clients total",
        "description": (
            "London businesses deserve better than faceless accounting firms. "
            "IVC Accounting provides personal service from founder James Howard, "
            "with direct access and transparent pricing."
        ),
    },
    "chelmsford": {
        "name": "Chelmsford",
        "region": "Essex",
        "title": "Accountant in Chelmsford - Personal Service from James Howard",
        "subtitle": "Serving Chelmsford businesses with only 50 clients total",
        "description": (
            "Chelmsford businesses choose IVC Accounting for personal service "
            "that's impossible at larger firms. James Howard personally handles "
            "every client relationship."
        ),
    },
    "colchester": {
        "name": "Colchester",
        "region": "Essex",
        "title": "Accountant in Colchester - Direct Access to Your Accountant",
        "subtitle": "Colchester's choice for personal accounting services",
        "description": (
            "Colchester businesses get direct access to James Howard at IVC "
            "Accounting. No gatekeepers, no waiting, just personal service from "
            "your accountant."
        ),
    },
    "essex": {
        "name": "Essex",
        "region": "Essex County",
        "title": "Accountant in Essex - County-Wide Personal Service",
        "subtitle": "Serving all of Essex with only 50 clients total",
        "description": (
            "Essex businesses choose IVC Accounting for personal service that's "
            "impossible at larger firms. James Howard serves the entire county "
            "with direct access and transparent pricing."
        ),
    },
    "braintree": {
        "name": "Braintree",
        "region": "Essex",
        "title": "Accountant in Braintree - Personal Service Guaranteed",
        "subtitle": "Braintree businesses choose IVC for direct access",
        "description": (
            "Braintree businesses get personal service from James Howard at IVC "
            "Accounting. With only 50 clients total, each Braintree business "
            "receives individual attention."
        ),
    },
    "halstead": {
        "name": "Halstead",
        "region": "Essex",
        "title": "Accountant in Halstead - Direct Access to James Howard",
        "subtitle": "Halstead's choice for personal accounting",
        "description": (
            "Halstead businesses choose IVC Accounting for personal service "
            "that's impossible at larger firms."
        ),
    },
    "ipswich": {
        "name": "Ipswich",
        "region": "Suffolk",
        "title": "Accountant in Ipswich - Personal Service from IVC",
        "subtitle": "Serving Ipswich and Suffolk businesses",
        "description": (
            "Ipswich businesses choose IVC Accounting for personal service and "
            "transparent pricing."
        ),
    },
}


# ==========================================
# Pricing tiers (monthly, GBP)
# ==========================================

PRICING_TIERS: list[dict[str, Any]] = [
    {
        "name": "Essential",
        "price": "500",
        "description": "For established businesses that want compliance handled properly",
        "features": [
            "Everything HMRC requires",
            "Monthly catch-ups with James",
            "Audit defence included",
            "Unlimited email access",
            "Annual accounts & tax returns",
            "VAT returns (if applicable)",
            "Payroll for up to 5 employees",
        ],
        "not_included": [
            "Quarterly strategy sessions",
            "Cash flow forecasting",
            "KPI dashboard",
        ],
        "featured": False,
    },
    {
        "name": "Strategic",
        "price": "850",
        "description": "For ambitious businesses planning their next stage",
        "features": [
            "Everything in Essential",
            "Quarterly strategy sessions",
            "Cash flow forecasting",
            "KPI dashboard access",
            "Tax planning reviews",
            "Priority response (4 hours)",
            "Payroll for up to 15 employees",
        ],
        "not_included": ["Weekly check-ins", "Exit planning"],
        "featured": True,
    },
    {
        "name": "Ultimate",
        "price": "1,500",
        "description": "For leaders preparing for investment or exit",
        "features": [
            "Everything in Strategic",
            "Weekly check-ins with James",
            "Exit planning support",
            "Investor pitch deck reviews",
            "M&A transaction support",
            "Custom financial modelling",
            "Instant response (1 hour)",
            "Unlimited payroll processing",
        ],
        "not_included": [],
        "featured": False,
    },
]


# ==========================================
# Service groups
# ==========================================

SERVICE_GROUPS: list[dict[str, Any]] = [
    {
        "title": "Essential Compliance",
        "description": (
            "Rock-solid bookkeeping, VAT, payroll, and year-end accounts. "
            "Reliable execution you can count on."
        ),
        "items": [
            ("Monthly Bookkeeping", "Clean, accurate, and always on time. Xero or QuickBooks."),
            ("VAT Returns", "Submitted early and optimised properly."),
            ("Payroll Management", "RTI submissions, pensions and benefits handled."),
            ("Year-End Accounts", "Full statutory accounts prepared to a high standard."),
            ("Company Secretarial", "Annual returns, share transfers and board minutes."),
            ("Tax Returns", "Personal and corporate tax returns filed strategically."),
        ],
    },
    {
        "title": "Strategic Advisory",
        "description": (
            "PE negotiations, tax planning, and business strategy from someone "
            "who has been through it."
        ),
        "items": [
            ("PE Deal Navigation", "From first approach to final exit."),
            ("Tax Optimisation", "Legal and ethical tax planning that works."),
            ("Cash Flow Planning", "Real-world cash management."),
            ("Exit Strategy", "Building value today for the exit you want tomorrow."),
            ("Board Advisory", "Strategic input from an experienced operator."),
            ("Deal Structuring", "Making sure the terms work for you."),
        ],
    },
    {
        "title": "Growth Partnership",
        "description": (
            "Systems, opportunities and sustainable growth without losing what "
            "makes your business special."
        ),
        "items": [
            ("Growth Strategy", "Sustainable growth plans based on real experience."),
            ("Financial Modelling", "Models that reflect reality and support decisions."),
            ("KPI Dashboards", "Track what matters with real-time visibility."),
            ("Funding Support", "From bank loans to investor pitches."),
            ("Systems & Processes", "Building a business that runs without you."),
        ],
    },
]


# ==========================================
# Sitemap static routes: path -> (changefreq, priority)
# ==========================================

STATIC_PAGES: dict[str, tuple[str, float]] = {
    "/": ("weekly", 1.0),
    "/about": ("monthly", 0.8),
    "/services": ("monthly", 0.8),
    "/pricing": ("monthly", 0.8),
    "/blog": ("weekly", 0.6),
}

# This project was developed with assistance from AI tools.
"""
Domain enums for the application wizard.

Shared domain types used by both the db package (storage rows) and the
wizard package (resolver, store and HTTP schemas).
"""

import enum


class StepToken(str, enum.Enum):
    """Wizard pages, declared in catalogue order."""

    BORROWER_INFO_1 = "borrower-info-1"
    BORROWER_INFO_2 = "borrower-info-2"
    CO_BORROWER_QUESTION = "co-borrower-question"
    CO_BORROWER_INFO_1 = "co-borrower-info-1"
    CO_BORROWER_INFO_2 = "co-borrower-info-2"
    REVIEW = "review"
    GETTING_TO_KNOW_YOU_INTRO = "getting-to-know-you-intro"
    LOAN = "loan"
    ASSETS = "assets"
    REAL_ESTATE = "real-estate"
    DECLARATIONS = "declarations"
    DEMOGRAPHIC_INFO = "demographic-info"
    ADDITIONAL_QUESTIONS = "additional-questions"
    DONE = "done"

    @classmethod
    def catalogue(cls) -> tuple["StepToken", ...]:
        """All steps in wizard order."""
        return tuple(cls)

    @classmethod
    def co_borrower_steps(cls) -> frozenset["StepToken"]:
        """Steps only visited when a second applicant exists."""
        return frozenset({cls.CO_BORROWER_INFO_1, cls.CO_BORROWER_INFO_2})


class FlowNamespace(str, enum.Enum):
    """Route prefix a step is rendered under, selected by loan purpose."""

    BUY = "buy"
    REFINANCE = "refinance"


class ProgressScope(str, enum.Enum):
    DEAL = "deal"
    BORROWER = "borrower"


class DealSection(str, enum.Enum):
    """URLA sections tracked in the deal progress map, in completion order."""

    SECTION_1A = "section1a"
    SECTION_1B = "section1b"
    SECTION_1C = "section1c"
    SECTION_1D = "section1d"
    SECTION_1E = "section1e"
    SECTION_2A = "section2a"
    SECTION_2B = "section2b"
    SECTION_2C = "section2c"
    SECTION_2D = "section2d"
    SECTION_3 = "section3"
    SECTION_4 = "section4"
    SECTION_5 = "section5"
    SECTION_6 = "section6"
    SECTION_7 = "section7"
    SECTION_8 = "section8"
    SECTION_9 = "section9"
    LENDER_L1 = "lenderL1"
    LENDER_L2 = "lenderL2"
    LENDER_L3 = "lenderL3"
    LENDER_L4 = "lenderL4"
    CONTINUATION = "continuation"
    UNMARRIED_ADDENDUM = "unmarriedAddendum"

"""Client feedback survey definition"""
from typing import Tuple

from feedback_wizard.models.schema import (
    FieldSpec,
    FieldType,
    FormState,
    MaxLength,
    MaxValue,
    MinLength,
    MinValue,
    OneOf,
    Refinement,
    StepDefinition,
    SurveySchema,
)

ROLE_OPTIONS = (
    "CEO",
    "COO",
    "Managing Director",
    "CMO",
    "Head of Marketing",
    "Marketing Manager",
    "Brand Manager",
    "Project Manager",
    "Social Media Manager",
    "Other",
)

IMPACT_ASSESSMENT_OPTIONS = ("Very Positive", "Positive", "Neutral", "Negative", "Very Negative")

RATING_SCALE_OPTIONS = ("1", "2", "3", "4", "5")

LIKELIHOOD_OPTIONS = ("Very Likely", "Likely", "Neutral", "Unlikely", "Very Unlikely")

SERVICE_OPTIONS = (
    ("services_graphicDesign", "Graphic Designing"),
    ("services_videography", "Videography"),
    ("services_videoEditing", "Video Editing"),
    ("services_websiteDevelopment", "Website Development"),
    ("services_socialMediaMarketing", "Social Media Marketing"),
    ("services_adFilm", "Ad Film"),
    ("services_other", "Other"),
)

# Free-text answers fed to sentiment analysis, in order, with their labels
ANALYSIS_TEXT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("workingRelationship", "Working Relationship"),
    ("otherComments", "Other Comments"),
    ("pleasantSurprises", "Pleasant Surprises"),
    ("futureServicesImprovements", "Future Services/Improvements"),
)

NO_FEEDBACK_TEXT = "No detailed textual feedback provided."


def _text(field_id, label, required_message=None, constraints=(), required_when=None):
    return FieldSpec(
        id=field_id,
        type=FieldType.TEXT,
        label=label,
        required=required_message is not None and required_when is None,
        required_message=required_message or "This field is required.",
        constraints=tuple(constraints),
        required_when=required_when,
        trim=required_when is not None,
        default="",
    )


def _choice(field_id, label, options, required_message):
    return FieldSpec(
        id=field_id,
        type=FieldType.ENUM,
        label=label,
        required=True,
        required_message=required_message,
        constraints=(OneOf(tuple(options)),),
        options=tuple(options),
    )


def _stars(field_id, label, message):
    # star widgets start at 0, which the minimum rejects
    return FieldSpec(
        id=field_id,
        type=FieldType.NUMBER,
        label=label,
        required=True,
        required_message=message,
        constraints=(
            MinValue(1, message),
            MaxValue(5, "Number must be less than or equal to 5"),
        ),
        default=0,
    )


def _service(field_id, label):
    return FieldSpec(id=field_id, type=FieldType.BOOLEAN, label=label, default=False)


def _role_is_other(form: FormState) -> bool:
    return form.raw("role") == "Other"


def _other_service_selected(form: FormState) -> bool:
    return form.raw("services_other") is True


def _long_answer(field_id, label, minimum_message):
    return _text(
        field_id,
        label,
        required_message=minimum_message,
        constraints=(MinLength(10, minimum_message), MaxLength(1000, "Cannot exceed 1000 characters.")),
    )


def _optional_answer(field_id, label, maximum_message):
    return _text(field_id, label, constraints=(MaxLength(1000, maximum_message),))


FIELDS = (
    # Step 1: organisation info
    _text("organizationName", "Organisation Name", "Organization name is required."),
    _text("personName", "Name of the person", "Your name is required."),
    _choice("role", "Position/Role in the Organisation", ROLE_OPTIONS, "Please select your role."),
    _text(
        "otherRole",
        "Please specify your role",
        "Please specify your role if 'Other' is selected.",
        required_when=_role_is_other,
    ),

    # Step 2: overall experience and impact
    _stars("overallExperience", "Overall experience", "Please rate your overall experience (1-5 stars)."),
    _choice(
        "impactAssessment",
        "Impact and results of our services on your brand",
        IMPACT_ASSESSMENT_OPTIONS,
        "Please assess the impact.",
    ),
    _stars("qualityOfService", "Quality of services provided", "Please rate the quality of services (1-5 stars)."),
    _stars("deliveryTime", "Delivery time of services", "Please rate the delivery time (1-5 stars)."),

    # Step 3: service specifics
    _choice(
        "brandStrategyAlignment",
        "Brand strategy alignment with your business",
        RATING_SCALE_OPTIONS,
        "Please rate brand strategy alignment.",
    ),
    *(_service(field_id, label) for field_id, label in SERVICE_OPTIONS),
    _text(
        "services_other_detail",
        "Please specify other service(s)",
        "Please specify the 'Other' service.",
        required_when=_other_service_selected,
    ),
    _choice(
        "businessGoalsAlignment",
        "Alignment with your business goals this month",
        RATING_SCALE_OPTIONS,
        "Please rate business goals alignment.",
    ),
    _choice(
        "deadlineAdherence",
        "Ability to meet deadlines this month",
        RATING_SCALE_OPTIONS,
        "Please rate deadline adherence.",
    ),

    # Step 4: feedback and marketing performance
    _choice(
        "feedbackIncorporation",
        "Were your feedback and requests incorporated into the work?",
        ("yes", "no"),
        "Please select if feedback was incorporated.",
    ),
    _choice(
        "digitalMarketingResults",
        "Digital marketing results",
        RATING_SCALE_OPTIONS,
        "Please rate digital marketing results.",
    ),
    _choice(
        "contentCreationRating",
        "Content creation and creative",
        RATING_SCALE_OPTIONS,
        "Please rate content creation.",
    ),

    # Step 5: open feedback and team interaction
    _optional_answer(
        "pleasantSurprises",
        "Deliverables that pleasantly surprised you",
        "Pleasant surprises description cannot exceed 1000 characters.",
    ),
    _choice(
        "teamResponseTime",
        "Team response to your enquiries",
        RATING_SCALE_OPTIONS,
        "Please rate team response time.",
    ),
    _long_answer(
        "workingRelationship",
        "Overall working relationship with our team",
        "Please describe the working relationship (min 10 characters).",
    ),
    _optional_answer(
        "futureServicesImprovements",
        "Additional services or improvements",
        "Future services/improvements description cannot exceed 1000 characters.",
    ),

    # Step 6: likelihood and final comments
    _choice(
        "likelihoodToContinue",
        "Likelihood to continue using our service",
        LIKELIHOOD_OPTIONS,
        "Please select likelihood to continue.",
    ),
    _choice(
        "likelihoodToRecommend",
        "Likelihood to recommend us",
        LIKELIHOOD_OPTIONS,
        "Please select likelihood to recommend.",
    ),
    _long_answer(
        "otherComments",
        "Other comments or suggestions for improvement",
        "Please provide any other comments (min 10 characters).",
    ),
)

STEPS = (
    StepDefinition(1, ("organizationName", "personName", "role", "otherRole"), "Organisation Info"),
    StepDefinition(
        2,
        ("overallExperience", "impactAssessment", "qualityOfService", "deliveryTime"),
        "Overall Experience & Impact",
    ),
    StepDefinition(
        3,
        (
            "brandStrategyAlignment",
            *(field_id for field_id, _ in SERVICE_OPTIONS),
            "services_other_detail",
            "businessGoalsAlignment",
            "deadlineAdherence",
        ),
        "Service Specifics",
    ),
    StepDefinition(
        4,
        ("feedbackIncorporation", "digitalMarketingResults", "contentCreationRating"),
        "Feedback & Marketing Performance",
    ),
    StepDefinition(
        5,
        ("pleasantSurprises", "teamResponseTime", "workingRelationship", "futureServicesImprovements"),
        "Open Feedback & Team Interaction",
    ),
    StepDefinition(6, ("likelihoodToContinue", "likelihoodToRecommend", "otherComments"), "Likelihood & Final Comments"),
)

REFINEMENTS = (
    Refinement.at_least_one(
        (field_id for field_id, _ in SERVICE_OPTIONS),
        "Please select at least one service.",
    ),
)

FEEDBACK_SCHEMA = SurveySchema(fields=FIELDS, steps=STEPS, refinements=REFINEMENTS)

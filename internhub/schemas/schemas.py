"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    student = "student"
    company = "company"
    admin = "admin"


class RegisterRole(str, Enum):
    student = "student"
    company = "company"


class CompanySize(str, Enum):
    startup = "startup"
    small = "small"
    medium = "medium"
    large = "large"
    enterprise = "enterprise"


class InternshipType(str, Enum):
    internship = "internship"
    project = "project"
    full_time = "full-time"
    part_time = "part-time"


class InternshipCategory(str, Enum):
    software_development = "Software Development"
    data_science = "Data Science"
    machine_learning = "Machine Learning"
    web_development = "Web Development"
    mobile_development = "Mobile Development"
    ui_ux_design = "UI/UX Design"
    digital_marketing = "Digital Marketing"
    business_development = "Business Development"
    finance = "Finance"
    human_resources = "Human Resources"
    content_writing = "Content Writing"
    graphic_design = "Graphic Design"
    sales = "Sales"
    operations = "Operations"
    research = "Research"
    other = "Other"


class LocationType(str, Enum):
    remote = "remote"
    onsite = "onsite"
    hybrid = "hybrid"


class StipendPeriod(str, Enum):
    monthly = "monthly"
    weekly = "weekly"
    total = "total"
    hourly = "hourly"


class InternshipStatus(str, Enum):
    active = "active"
    closed = "closed"
    draft = "draft"
    expired = "expired"


class ApplicationStatus(str, Enum):
    pending = "pending"
    reviewing = "reviewing"
    shortlisted = "shortlisted"
    interviewed = "interviewed"
    accepted = "accepted"
    rejected = "rejected"
    withdrawn = "withdrawn"


class InterviewType(str, Enum):
    phone = "phone"
    video = "video"
    in_person = "in-person"
    technical = "technical"


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class WishlistCategory(str, Enum):
    interested = "interested"
    backup = "backup"
    dream_job = "dream_job"
    applied = "applied"
    rejected = "rejected"


class WishlistApplicationStatus(str, Enum):
    not_applied = "not_applied"
    planning_to_apply = "planning_to_apply"
    applied = "applied"
    no_longer_interested = "no_longer_interested"


class NotificationType(str, Enum):
    application_received = "application_received"
    application_status_update = "application_status_update"
    new_internship = "new_internship"
    new_internship_match = "new_internship_match"
    new_similar_internship = "new_similar_internship"
    interview_scheduled = "interview_scheduled"
    deadline_reminder = "deadline_reminder"
    wishlist_reminder = "wishlist_reminder"
    wishlist_deadline_approaching = "wishlist_deadline_approaching"
    wishlist_internship_updated = "wishlist_internship_updated"
    wishlist_internship_expired = "wishlist_internship_expired"
    profile_view = "profile_view"
    message = "message"
    system_update = "system_update"
    company_verification = "company_verification"
    review_request = "review_request"


class ProfileVisibility(str, Enum):
    public = "public"
    private = "private"


class BoardJobType(str, Enum):
    internship = "internship"
    project = "project"


class BoardApplicationStatus(str, Enum):
    pending = "pending"
    reviewing = "reviewing"
    interview = "interview"
    accepted = "accepted"
    rejected = "rejected"


class ExperienceLevel(str, Enum):
    entry = "entry"
    intermediate = "intermediate"
    advanced = "advanced"


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True

class CountResponse(BaseModel):
    message: str
    count: int
    success: bool = True

class ErrorResponse(BaseModel):
    detail: str

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: RegisterRole = RegisterRole.student
    company_name: Optional[str] = Field(None, min_length=2, max_length=200)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str

class UserResponse(BaseModel):
    user_id: int
    name: str
    email: str
    role: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

class UserListResponse(BaseModel):
    users: List[UserResponse]
    pagination: Pagination

class UserSearchResult(BaseModel):
    user_id: int
    name: str
    email: str
    role: str
    avatar_url: Optional[str] = None


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    university: Optional[str] = None
    degree: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[int] = Field(None, ge=1950, le=2100)
    gpa: Optional[float] = Field(None, ge=0, le=10)
    bio: Optional[str] = Field(None, max_length=1000)
    portfolio_url: Optional[str] = None
    skills: Optional[List[str]] = None

class StudentProfileResponse(BaseModel):
    student_id: int
    user_id: int
    name: str
    email: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    university: Optional[str] = None
    degree: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[int] = None
    gpa: Optional[float] = None
    bio: Optional[str] = None
    portfolio_url: Optional[str] = None
    resume_url: Optional[str] = None
    skills: List[str] = []
    created_at: datetime

class PublicProfileResponse(BaseModel):
    user_id: int
    name: str
    role: str
    avatar_url: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    university: Optional[str] = None
    degree: Optional[str] = None
    major: Optional[str] = None
    skills: List[str] = []
    company_name: Optional[str] = None
    industry: Optional[str] = None
    website: Optional[str] = None
    is_verified: Optional[bool] = None
    created_at: datetime

class FileUploadResponse(BaseModel):
    message: str
    url: str
    filename: str

class ResumeUploadResponse(FileUploadResponse):
    text_extracted: bool = False
    characters: int = 0


# ============================================================
# COMPANY SCHEMAS
# ============================================================

class CompanyProfileUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=2, max_length=200)
    industry: Optional[str] = None
    company_size: Optional[CompanySize] = None
    website: Optional[str] = None
    description: Optional[str] = Field(None, max_length=2000)
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

class CompanyResponse(BaseModel):
    company_id: int
    user_id: int
    company_name: str
    email: str
    industry: Optional[str] = None
    company_size: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    is_verified: bool = False
    created_at: datetime

class CompanyListResponse(BaseModel):
    companies: List[CompanyResponse]
    pagination: Pagination


# ============================================================
# INTERNSHIP SCHEMAS
# ============================================================

class LocationIn(BaseModel):
    type: LocationType = LocationType.onsite
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

class StipendIn(BaseModel):
    amount: float = Field(0, ge=0)
    currency: str = "USD"
    period: StipendPeriod = StipendPeriod.monthly

class InternshipCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=50, max_length=2000)
    category: InternshipCategory
    internship_type: InternshipType = InternshipType.internship
    location: LocationIn = LocationIn()
    duration: str = Field(..., min_length=1, max_length=50)
    stipend: StipendIn = StipendIn()
    skills: List[str] = []
    application_deadline: datetime
    start_date: datetime
    end_date: Optional[datetime] = None
    max_applications: int = Field(100, ge=1)
    is_featured: bool = False
    is_urgent: bool = False
    status: InternshipStatus = InternshipStatus.active

class InternshipUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=5, max_length=100)
    description: Optional[str] = Field(None, min_length=50, max_length=2000)
    category: Optional[InternshipCategory] = None
    internship_type: Optional[InternshipType] = None
    location: Optional[LocationIn] = None
    duration: Optional[str] = None
    stipend: Optional[StipendIn] = None
    skills: Optional[List[str]] = None
    application_deadline: Optional[datetime] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_applications: Optional[int] = Field(None, ge=1)
    is_featured: Optional[bool] = None
    is_urgent: Optional[bool] = None
    status: Optional[InternshipStatus] = None

class LocationOut(BaseModel):
    type: str
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

class StipendOut(BaseModel):
    amount: float
    currency: str
    period: str

class InternshipResponse(BaseModel):
    internship_id: int
    company_id: int
    company_user_id: int
    company_name: str
    company_logo: Optional[str] = None
    company_verified: bool = False
    title: str
    description: str
    category: str
    internship_type: str
    location: LocationOut
    duration: str
    stipend: StipendOut
    skills: List[str] = []
    application_deadline: datetime
    start_date: datetime
    end_date: Optional[datetime] = None
    status: str
    max_applications: int
    applications_count: int
    views: int
    saves: int
    is_featured: bool
    is_urgent: bool
    created_at: datetime
    # Present only for an authenticated student
    is_saved: Optional[bool] = None
    has_applied: Optional[bool] = None
    application_status: Optional[str] = None

class InternshipListResponse(BaseModel):
    internships: List[InternshipResponse]
    pagination: Pagination

class SaveToggleResponse(BaseModel):
    message: str
    saved: bool


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationAnswer(BaseModel):
    question: str
    answer: str

class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus
    note: Optional[str] = Field(None, max_length=500)
    rejection_reason: Optional[str] = Field(None, max_length=500)

class InterviewSchedule(BaseModel):
    scheduled_at: datetime
    interview_type: InterviewType = InterviewType.video
    link: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)

class WithdrawRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)

class TimelineEntry(BaseModel):
    status: str
    note: Optional[str] = None
    updated_by: Optional[int] = None
    created_at: datetime

class ApplicationDocument(BaseModel):
    name: str
    url: str
    content_type: Optional[str] = None

class InterviewDetails(BaseModel):
    scheduled: bool = False
    scheduled_at: Optional[datetime] = None
    interview_type: Optional[str] = None
    link: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None

class ApplicationResponse(BaseModel):
    application_id: int
    internship_id: int
    internship_title: str
    company_id: int
    company_name: str
    student_id: int
    student_user_id: int
    student_name: str
    student_email: str
    status: str
    cover_letter: Optional[str] = None
    resume_url: str
    priority: str
    withdrawal_reason: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class ApplicationDetailResponse(ApplicationResponse):
    answers: List[ApplicationAnswer] = []
    documents: List[ApplicationDocument] = []
    timeline: List[TimelineEntry] = []
    interview: InterviewDetails = InterviewDetails()

class ApplicationListResponse(BaseModel):
    applications: List[ApplicationResponse]
    pagination: Pagination


# ============================================================
# WISHLIST SCHEMAS
# ============================================================

class WishlistCreate(BaseModel):
    internship_id: int
    notes: Optional[str] = Field(None, max_length=500)
    priority: Optional[Priority] = None
    category: Optional[WishlistCategory] = None
    tags: Optional[List[str]] = None
    reminder_date: Optional[datetime] = None

class WishlistUpdate(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)
    priority: Optional[Priority] = None
    category: Optional[WishlistCategory] = None
    application_status: Optional[WishlistApplicationStatus] = None
    tags: Optional[List[str]] = None
    reminder_date: Optional[datetime] = None

class WishlistBulkItem(BaseModel):
    id: str
    updates: WishlistUpdate

class WishlistBulkRequest(BaseModel):
    items: List[WishlistBulkItem] = Field(..., min_length=1)

class WishlistBulkResult(BaseModel):
    id: str
    success: bool
    error: Optional[str] = None

class WishlistInternshipSummary(BaseModel):
    internship_id: int
    title: str
    company_name: str
    category: str
    location_type: str
    city: Optional[str] = None
    stipend_amount: float
    stipend_currency: str
    application_deadline: datetime
    status: str

class WishlistItemResponse(BaseModel):
    id: str
    internship_id: int
    notes: Optional[str] = None
    priority: str
    category: str
    application_status: str
    tags: List[str] = []
    reminder_date: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    internship: Optional[WishlistInternshipSummary] = None
    days_until_deadline: Optional[int] = None
    deadline_urgency: Optional[str] = None
    reminder_due: bool = False

class WishlistListResponse(BaseModel):
    items: List[WishlistItemResponse]
    pagination: Pagination

class WishlistStatsResponse(BaseModel):
    total: int
    by_category: Dict[str, int]
    by_priority: Dict[str, int]
    reminders_due: int
    closing_soon: int


# ============================================================
# NOTIFICATION SCHEMAS
# ============================================================

class NotificationData(BaseModel):
    internship_id: Optional[int] = None
    application_id: Optional[int] = None
    wishlist_id: Optional[str] = None
    conversation_id: Optional[str] = None
    url: Optional[str] = None
    action_required: bool = False
    metadata: Dict[str, Any] = {}

class NotificationResponse(BaseModel):
    id: str
    recipient_id: int
    sender_id: Optional[int] = None
    type: str
    title: str
    message: str
    data: NotificationData = NotificationData()
    read: bool
    read_at: Optional[datetime] = None
    priority: str
    created_at: datetime

class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int
    pagination: Pagination

class NotificationStatsResponse(BaseModel):
    total: int
    unread: int
    by_type: Dict[str, int]
    by_priority: Dict[str, int]

class NotificationIdsRequest(BaseModel):
    notification_ids: List[str] = Field(..., min_length=1)

class NotificationPreferences(BaseModel):
    email_notifications: bool = True
    push_notifications: bool = True
    wishlist_reminders: bool = True
    deadline_alerts: bool = True
    new_match_alerts: bool = True
    profile_visibility: ProfileVisibility = ProfileVisibility.public

class NotificationPreferencesUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    wishlist_reminders: Optional[bool] = None
    deadline_alerts: Optional[bool] = None
    new_match_alerts: Optional[bool] = None
    profile_visibility: Optional[ProfileVisibility] = None


# ============================================================
# MESSAGING SCHEMAS
# ============================================================

class ConversationCreate(BaseModel):
    participant_ids: List[int] = Field(..., min_length=1)
    subject: Optional[str] = Field(None, max_length=200)

class ConversationResponse(BaseModel):
    id: str
    participants: List[int]
    subject: Optional[str] = None
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: int = 0
    created_at: datetime

class ConversationListResponse(BaseModel):
    conversations: List[ConversationResponse]
    pagination: Pagination

class ChatAttachment(BaseModel):
    name: str
    url: str
    content_type: Optional[str] = None

class ChatMessageResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: int
    content: str
    attachments: List[ChatAttachment] = []
    read_by: List[int] = []
    created_at: datetime

class ChatMessageListResponse(BaseModel):
    messages: List[ChatMessageResponse]
    pagination: Pagination


# ============================================================
# ADMIN SCHEMAS
# ============================================================

class InternshipStatusUpdate(BaseModel):
    status: InternshipStatus

class AnnouncementCreate(BaseModel):
    title: str = Field("System Announcement", max_length=100)
    message: str = Field(..., min_length=1, max_length=500)
    priority: Priority = Priority.medium


# ============================================================
# JOB BOARD SCHEMAS
# ============================================================

class BoardJobCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    location: str
    job_type: BoardJobType
    duration: str
    salary: Optional[str] = None
    description: str = Field(..., min_length=1)
    requirements: List[str] = []
    skills: List[str] = []
    responsibilities: List[str] = []
    benefits: List[str] = []
    deadline: datetime
    is_remote: bool = False
    is_part_time: bool = False
    experience_level: ExperienceLevel = ExperienceLevel.entry

class BoardJobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=2, max_length=200)
    location: Optional[str] = None
    job_type: Optional[BoardJobType] = None
    duration: Optional[str] = None
    salary: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[List[str]] = None
    skills: Optional[List[str]] = None
    responsibilities: Optional[List[str]] = None
    benefits: Optional[List[str]] = None
    deadline: Optional[datetime] = None
    is_active: Optional[bool] = None
    is_remote: Optional[bool] = None
    is_part_time: Optional[bool] = None
    experience_level: Optional[ExperienceLevel] = None

class BoardJobResponse(BaseModel):
    job_id: int
    company_id: int
    company_name: str
    title: str
    location: str
    job_type: str
    duration: str
    salary: Optional[str] = None
    description: str
    requirements: List[str] = []
    skills: List[str] = []
    responsibilities: List[str] = []
    benefits: List[str] = []
    deadline: datetime
    is_active: bool
    is_remote: bool
    is_part_time: bool
    experience_level: str
    views: int
    bookmarks: int = 0
    created_at: datetime

class BoardPagination(BaseModel):
    current: int
    pages: int
    total: int

class BoardJobListResponse(BaseModel):
    jobs: List[BoardJobResponse]
    pagination: BoardPagination

class BoardApplicationCreate(BaseModel):
    job_id: int
    cover_letter: str = Field(..., min_length=1)
    resume_url: str = Field(..., min_length=1)
    portfolio_url: Optional[str] = None

class BoardStatusUpdate(BaseModel):
    status: BoardApplicationStatus
    notes: Optional[str] = None

class BoardTimelineEntry(BaseModel):
    status: str
    note: Optional[str] = None
    created_at: datetime

class BoardApplicationResponse(BaseModel):
    application_id: int
    job_id: int
    job_title: str
    company_id: int
    company_name: str
    student_id: int
    student_name: str
    status: str
    cover_letter: str
    resume_url: str
    portfolio_url: Optional[str] = None
    company_notes: Optional[str] = None
    timeline: List[BoardTimelineEntry] = []
    created_at: datetime
    updated_at: datetime

# pte_portal/models/enums.py

from enum import Enum

# --- User Related Enums ---

class UserRole(str, Enum):
    """Roles a portal account can hold."""
    STUDENT = "student"
    ADMIN = "admin"

# --- Task Related Enums ---

class TaskType(str, Enum):
    """PTE exercise kinds a task can target."""
    # Speaking & Writing
    READ_ALOUD = "Read Aloud"
    REPEAT_SENTENCE = "Repeat Sentence"
    DESCRIBE_IMAGE = "Describe Image"
    RETELL_LECTURE = "Retell Lecture"
    ANSWER_SHORT_QUESTION = "Answer Short Question"
    SUMMARIZE_WRITTEN_TEXT = "Summarize Written Text"
    ESSAY = "Essay"
    # Reading
    MC_SINGLE_ANSWER = "Multiple Choice, Choose Single Answer"
    MC_MULTIPLE_ANSWERS = "Multiple Choice, Choose Multiple Answers"
    REORDER_PARAGRAPHS = "Re-order Paragraphs"
    READING_FILL_BLANKS = "Reading Fill in the Blanks"
    READING_WRITING_FILL_BLANKS = "Reading & Writing Fill in the Blanks"
    # Listening
    SUMMARIZE_SPOKEN_TEXT = "Summarize Spoken Text"
    LISTENING_MC_MULTIPLE_ANSWERS = "Multiple Choice, Choose Multiple Answers (Listening)"
    LISTENING_FILL_BLANKS = "Fill in the Blanks (Listening)"
    HIGHLIGHT_CORRECT_SUMMARY = "Highlight Correct Summary"
    LISTENING_MC_SINGLE_ANSWER = "Multiple Choice, Choose Single Answer (Listening)"
    SELECT_MISSING_WORD = "Select Missing Word"
    HIGHLIGHT_INCORRECT_WORDS = "Highlight Incorrect Words"
    WRITE_FROM_DICTATION = "Write from Dictation"

class AssignmentMode(str, Enum):
    """How a task's audience is determined."""
    BROADCAST = "broadcast"  # every active student, present and future
    SPECIFIC = "specific"    # only the listed students

# --- Submission Related Enums ---

class SubmissionStatus(str, Enum):
    """Review status of a submission."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class ReviewDecision(str, Enum):
    """Statuses an admin may set when reviewing. A submission is never reopened to pending."""
    APPROVED = "approved"
    REJECTED = "rejected"

# --- Material Related Enums ---

class MaterialType(str, Enum):
    GRAMMAR = "grammar"
    TEMPLATE = "template"
    TIPS = "tips"

class MaterialLanguage(str, Enum):
    ENGLISH = "english"
    GUJARATI = "gujarati"
    BOTH = "both"

# --- File Storage Enums ---

class StorageBackend(str, Enum):
    """Where uploaded bytes are written."""
    LOCAL = "local"
    BLOB = "blob"

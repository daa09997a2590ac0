"""
Configuration settings for the Fleet Trip Audit System
"""
import os
from typing import List

# Application Settings
CURRENCY_SYMBOL = "₹"
LOG_LEVEL = os.getenv("AUDIT_LOG_LEVEL", "INFO")

# Audit Rule Thresholds
MIN_DISTANCE_KM = float(os.getenv("AUDIT_MIN_DISTANCE_KM", "5"))
MAX_DISTANCE_KM = float(os.getenv("AUDIT_MAX_DISTANCE_KM", "300"))
MAX_FUEL_COST = float(os.getenv("AUDIT_MAX_FUEL_COST", "2500"))  # ~25 L at 100/L
PHOTO_REQUIRED_AMOUNT = float(os.getenv("AUDIT_PHOTO_REQUIRED_AMOUNT", "1000"))
ODOMETER_TOLERANCE_KM = 0.01
MAX_TRIPS_PER_DAY = 10
FUEL_PRICE_PER_LITER = float(os.getenv("AUDIT_FUEL_PRICE_PER_LITER", "100"))

# Severity Levels
SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"
SEVERITIES: List[str] = [SEVERITY_HIGH, SEVERITY_MEDIUM, SEVERITY_LOW]

# Audit Status
STATUS_PENDING = "pending"
STATUS_VERIFIED = "verified"
STATUS_NEEDS_REVIEW = "needs_review"
AUDIT_STATUSES: List[str] = [STATUS_PENDING, STATUS_VERIFIED, STATUS_NEEDS_REVIEW]

# Overall trip condition shown on badges
OVERALL_CLEAN = "clean"
OVERALL_WARNING = "warning"
OVERALL_CRITICAL = "critical"

# Anomaly Types
ANOMALY_HIGH_FUEL = "high_fuel_usage"
ANOMALY_DISTANCE = "distance_anomaly"
ANOMALY_MISSING_PHOTO = "missing_photo"
ANOMALY_PLATFORM_MISMATCH = "platform_mismatch"
ANOMALY_REPEATED_IMAGE = "repeated_image"
ANOMALY_MISSING_ATTENDANCE = "missing_attendance"
ANOMALY_UNUSUAL_EARNINGS = "unusual_earnings"
ANOMALY_TIME = "time_anomaly"
ANOMALY_FUEL_EFFICIENCY = "fuel_efficiency_anomaly"

# Entity status values
PAYMENT_STATUSES = ["pending", "paid", "overdue", "cancelled"]
ATTENDANCE_STATUSES = ["present", "absent", "late", "half_day"]

# Dashboard defaults
DEFAULT_RANKING_SIZE = 5
DEFAULT_ANOMALY_DIGEST_SIZE = 5
DEFAULT_SERIES_DAYS = 30
DEFAULT_EFFICIENCY_WINDOW = 10
TIME_RANGE_PRESETS = ["7d", "30d", "90d", "3m", "6m", "1y", "all"]

# Export Settings
CSV_COLUMNS = ["Date", "Driver", "Platform", "Distance (KM)", "Amount", "Status"]

# Date Format
DATE_FORMAT = "%Y-%m-%d"

# Optional threshold overrides file
AUDIT_CONFIG_PATH = os.getenv("AUDIT_CONFIG_PATH", "")

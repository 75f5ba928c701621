import os
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

# Project base path
basedir = os.path.abspath(os.path.dirname(__file__))

class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'change-me'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///' + os.path.join(basedir, 'app.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # --- Mail (booking reminders) ---
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = True
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'Court Booking <no-reply@courtbooking.local>')

    # --- Booking core ---
    # Day windows and "today" checks always use this zone
    BOOKING_TIMEZONE = os.environ.get('BOOKING_TIMEZONE', 'Asia/Kuala_Lumpur')
    SLOT_MINUTES = int(os.environ.get('SLOT_MINUTES', 60))
    MODIFICATION_WINDOW_MINUTES = int(os.environ.get('MODIFICATION_WINDOW_MINUTES', 30))
    MAX_BOOKINGS_PER_DAY = int(os.environ.get('MAX_BOOKINGS_PER_DAY', 2))
    MAX_BOOKINGS_PER_WEEK = int(os.environ.get('MAX_BOOKINGS_PER_WEEK', 7))
    DEFAULT_OPEN_TIME = os.environ.get('DEFAULT_OPEN_TIME', '08:00')
    DEFAULT_CLOSE_TIME = os.environ.get('DEFAULT_CLOSE_TIME', '22:00')
    REMINDER_LEAD_HOURS = int(os.environ.get('REMINDER_LEAD_HOURS', 24))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    MAIL_SUPPRESS_SEND = True
    MAX_BOOKINGS_PER_DAY = 100
    MAX_BOOKINGS_PER_WEEK = 100

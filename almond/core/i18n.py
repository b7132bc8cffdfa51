"""
Localized message lookup.

Every user-facing message is addressed by a key. `translate(key, locale)`
returns the text for the requested locale, falling back to English when
the locale has no entry, and to the key itself when the key is unknown.
"""

from typing import Literal

Locale = Literal["uz", "ru", "en"]

SUPPORTED_LOCALES: tuple[str, ...] = ("uz", "ru", "en")
DEFAULT_LOCALE: Locale = "uz"
FALLBACK_LOCALE: Locale = "en"

MESSAGES: dict[str, dict[str, str]] = {
    # --- Signup ---
    "email_empty": {
        "uz": "Elektron pochtangizni kiriting.",
        "ru": "Введите свой адрес электронной почты.",
        "en": "Enter your email.",
    },
    "email_already_exists": {
        "uz": "Bu foydalanuvchi allaqachon mavjud. Yangi elektron pochtani sinab ko'ring.",
        "ru": "Этот пользователь уже существует. Попробуйте новый адрес электронной почты.",
        "en": "This user already exists. Try a new email.",
    },
    "phone_number_already_exists": {
        "uz": "Bu foydalanuvchi allaqachon mavjud. Yangi telefon raqamni sinab ko'ring.",
        "ru": "Этот пользователь уже существует. Попробуйте новый номер телефона.",
        "en": "This user already exists. Try a new phone number.",
    },
    "short_password": {
        "uz": "Parol kamida 8 ta belgidan iborat bo'lishi kerak.",
        "ru": "Пароль должен содержать не менее 8 символов.",
        "en": "Password must contain at least 8 characters.",
    },
    "long_password": {
        "uz": "Parol ko'pi bilan 64 ta belgidan iborat bo'lishi kerak.",
        "ru": "Пароль должен содержать не более 64 символов.",
        "en": "Password must contain at most 64 characters.",
    },
    "sending_verification_code": {
        "uz": "Tasdiqlash kodini yuborishda xatolik yuz berdi. Iltimos keyinroq qayta urinib ko'ring.",
        "ru": "Произошла ошибка при отправке кода подтверждения. Пожалуйста, повторите попытку позже.",
        "en": "An error occurred while sending the verification code. Please try again later.",
    },
    "invalid_email": {
        "uz": "Iltimos, to'g'ri elektron pochta manzilini kiriting.",
        "ru": "Пожалуйста, введите правильный адрес электронной почты.",
        "en": "Please enter a valid email.",
    },
    "invalid_first_name": {
        "uz": "Iltimos, ismingizni to'g'ri kiriting.",
        "ru": "Пожалуйста, введите верное имя.",
        "en": "Please enter a valid name.",
    },
    "invalid_family_name": {
        "uz": "Iltimos, familiyangizni to'g'ri kiriting.",
        "ru": "Пожалуйста, введите действительную фамилию.",
        "en": "Please, enter a valid family name.",
    },
    "invalid_phone_number": {
        "uz": "Iltimos, to'gri telefon raqam kiriting.",
        "ru": "Пожалуйста, введите действительный номер телефона.",
        "en": "Please, enter a valid phone number.",
    },
    "invalid_country_code": {
        "uz": "Iltimos, to'g'ri mamlakat kodini kiriting.",
        "ru": "Пожалуйста, введите действительный код страны.",
        "en": "Please, enter a valid country code.",
    },
    "sent_to_email": {
        "uz": "Tasdiqlash kodi elektron pochtangizga yuborildi.",
        "ru": "Код подтверждения был отправлен на вашу электронную почту.",
        "en": "Verification code has been sent to your email.",
    },
    "sent_to_phone_number": {
        "uz": "Tasdiqlash kodi telefon raqamingizga yuborildi.",
        "ru": "Код подтверждения был отправлен на ваш номер телефона.",
        "en": "Verification code has been sent to your phone number.",
    },
    "verification_subject": {
        "uz": "Almond.uz uchun tasdiqlash kodi (faqat 10 daqiqa amal qiladi)",
        "ru": "Код подтверждения для Almond.uz (действителен только 10 минут)",
        "en": "Verification Code for Almond.uz (valid only for 10 minutes)",
    },
    "verification_text": {
        "uz": "Tasdiqlash kodingiz: ",
        "ru": "Ваш код подтверждения: ",
        "en": "Your verification code: ",
    },
    "user_not_found": {
        "uz": "Nimadir noto'g'ri bajarildi. Iltimos, qayta ro'yxatdan o'tishga urinib ko'ring.",
        "ru": "Что-то пошло не так. Пожалуйста, попробуйте зарегистрироваться еще раз.",
        "en": "Something went wrong. Please try to sign up again.",
    },
    # --- Verify ---
    "code_absent": {
        "uz": "Iltimos, tasdiqlash kodini kiriting.",
        "ru": "Пожалуйста, введите код подтверждения.",
        "en": "Please enter the verification code.",
    },
    "code_invalid": {
        "uz": "Tasdiqlash kodi xato.",
        "ru": "Неверный код подтверждения.",
        "en": "Invalid verification code.",
    },
    "code_expired": {
        "uz": "Tasdiqlash kodi muddati tugagan. Iltimos, yangi kod oling.",
        "ru": "Срок действия кода подтверждения истек. Пожалуйста, получите новый код.",
        "en": "The verification code has expired. Please get a new code.",
    },
    "code_not_numeric": {
        "uz": "Tasdiqlash kodi faqat raqamlardan iborat bo'lishi kerak.",
        "ru": "Код подтверждения должен состоять только из цифр.",
        "en": "The verification code should consist of only numbers.",
    },
    "cookies_modified": {
        "uz": "Ruxsatsiz o'zgarishlar aniqlandi. Iltimos, qayta ro'yxatdan o'tishga urinib ko'ring.",
        "ru": "Обнаружены несанкционированные изменения. Пожалуйста, попробуйте зарегистрироваться еще раз.",
        "en": "Unauthorized changes detected. Please try to sign up again.",
    },
    "duplicate_code": {
        "uz": "Tasdiqlash kodini yaratib bo'lmadi. Iltimos, qayta urinib ko'ring.",
        "ru": "Не удалось создать код подтверждения. Пожалуйста, попробуйте еще раз.",
        "en": "Could not issue a verification code. Please try again.",
    },
    # --- Login / password ---
    "missing_credentials": {
        "uz": "Iltimos, kerakli ma'lumotlarni kiriting.",
        "ru": "Пожалуйста, введите необходимую информацию.",
        "en": "Please enter required data.",
    },
    "incorrect_credentials_email": {
        "uz": "Parol yoki elektron pochta noto'g'ri.",
        "ru": "Пароль или адрес электронной почты неверны.",
        "en": "Password or email is not correct.",
    },
    "incorrect_credentials_phone_number": {
        "uz": "Parol yoki telefon raqam noto'g'ri.",
        "ru": "Пароль или номер телефона неверный.",
        "en": "Password or phone number is not correct.",
    },
    "account_not_verified": {
        "uz": "Hisobingiz hali tasdiqlanmagan. Iltimos, ro'yxatdan o'tishni yakunlang.",
        "ru": "Ваш аккаунт еще не подтвержден. Пожалуйста, завершите регистрацию.",
        "en": "Your account is not verified yet. Please finish signing up.",
    },
    "incorrect_password": {
        "uz": "Joriy parol noto'g'ri.",
        "ru": "Текущий пароль неверный.",
        "en": "Current password is not correct.",
    },
    # --- Route guard ---
    "user_changed_password": {
        "uz": "Foydalanuvchi yaqinda parolini o'zgartirdi. Iltimos, tizimga qayta kiring.",
        "ru": "Пользователь недавно сменил свой пароль. Пожалуйста, войдите снова.",
        "en": "User has changed their password recently. Please log in again.",
    },
    "not_allowed": {
        "uz": "Sizda bu amalni bajarish uchun ruxsat yo'q.",
        "ru": "У вас нет разрешения на выполнение этого действия.",
        "en": "You do not have permission to do this action.",
    },
    "invalid_token": {"en": "Invalid token. New log in required."},
    "expired_token": {"en": "Expired token. New log in required."},
    # --- Categories ---
    "translations_required": {"en": "Translations are required and must be an array of objects."},
    "english_translation_required": {"en": "English translation is required."},
    "duplicate_translation_language": {"en": "Each language may appear only once in translations."},
    "invalid_slug": {"en": "Slug must contain at least one letter or digit."},
    "category_not_found": {"en": "Category not found."},
    "parent_category_not_found": {"en": "Parent category not found."},
    "category_own_parent": {"en": "A category cannot be its own parent."},
    "category_cycle": {"en": "A category cannot be moved under one of its own descendants."},
    "category_slug_taken": {"en": "A category with this slug already exists."},
    "parent_update_not_allowed": {"en": "Parent category updates are not allowed in this endpoint."},
    "no_fields_to_update": {"en": "No valid fields to update."},
    "category_modified_concurrently": {"en": "The category was modified by another request. Please retry."},
    # --- Generic ---
    "invalid_field": {
        "uz": "Noto'g'ri qiymat.",
        "ru": "Недопустимое значение.",
        "en": "Invalid value.",
    },
    "route_not_found": {"en": "Can't find this route on this server."},
    "something_went_wrong": {
        "uz": "Nimadir noto'g'ri bajarildi.",
        "ru": "Что-то пошло не так.",
        "en": "Something went wrong.",
    },
}


def get_locale(user_locale: str | None) -> Locale:
    """Validate the `user_locale` cookie value, defaulting to Uzbek."""
    return user_locale if user_locale in SUPPORTED_LOCALES else DEFAULT_LOCALE  # type: ignore[return-value]


def translate(key: str, locale: str = DEFAULT_LOCALE) -> str:
    entry = MESSAGES.get(key)
    if entry is None:
        return key
    return entry.get(locale) or entry.get(FALLBACK_LOCALE) or key

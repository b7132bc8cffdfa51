REFRESH_COOKIE = "_almond_key_"
EMAIL_COOKIE = "_almond_email_"
COUNTRY_CODE_COOKIE = "_almond_country_code_"
PHONE_NUMBER_COOKIE = "_almond_phone_number_"
LOCALE_COOKIE = "user_locale"

BINDING_COOKIES = (EMAIL_COOKIE, COUNTRY_CODE_COOKIE, PHONE_NUMBER_COOKIE)

VERIFICATION_CODE_MIN = 10000
VERIFICATION_CODE_MAX = 99999

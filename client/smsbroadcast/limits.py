"""
Gateway limits for SMS Broadcast

Values imposed by the SMS Broadcast advanced API. The multipart chunk size is
153 rather than 160 because each part carries a 7 character concatenation
header.
"""

API_ENDPOINT = "https://api.smsbroadcast.com.au/api-adv.php"

# Maximum number of characters that can be included in a single SMS.
MAX_CHARS_PER_MESSAGE_SINGLE = 160

# Maximum number of characters in each part of a multipart SMS.
MAX_CHARS_PER_MESSAGE_MULTI = 153

# Maximum number of SMSes that can be part of a multipart SMS.
MAX_SMS_PER_MULTIPART = 7

# Maximum number of characters in the sender string.
MAX_CHARS_SENDER = 11

# Maximum length of the optional message reference. Passed through unchecked.
MAX_CHARS_REFERENCE = 20

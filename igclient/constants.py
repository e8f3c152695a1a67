# ============================================
#  API / APP CONSTANTS
# ============================================

HOST = 'i.instagram.com'
BASE_URL = f'https://{HOST}/'
API_URL_PREFIX = '/api/v1'

APP_VERSION = '121.0.0.29.119'
APP_VERSION_CODE = '185203708'

SIGNATURE_KEY = (
    '9193488027538fd3450b83b7d05286d4'
    'ca9599a0f7eeed90d8c85925698a05dc')
SIGNATURE_VERSION = '4'
BREADCRUMB_KEY = 'iN4$aGr0m'

FACEBOOK_ANALYTICS_APPLICATION_ID = '567067343352427'
FACEBOOK_ORCA_APPLICATION_ID = '124024574287414'
FACEBOOK_OTA_FIELDS = (
    'update%7Bdownload_uri%2Cdownload_uri_delta_base%2C'
    'version_code_delta_base%2Cdownload_uri_delta%2C'
    'fallback_to_full_update%2Cfile_size_delta%2Cversion_code'
    '%2Cpublished_date%2Cfile_size%2Cota_bundle_type%2C'
    'resources_checksum%2Callowed_networks%2Crelease_id%7D')

LOGIN_EXPERIMENTS = ','.join((
    'ig_android_fci_onboarding_friend_search',
    'ig_android_device_detection_info_upload',
    'ig_android_sms_retriever_backtest_universe',
    'ig_android_direct_add_direct_to_android_native_photo_share_sheet',
    'ig_growth_android_profile_pic_prefill_with_fb_pic_2',
    'ig_account_identity_logged_out_signals_global_holdout_universe',
    'ig_android_login_identifier_fuzzy_match',
    'ig_android_video_render_codec_low_memory_gc',
    'ig_android_custom_transitions_universe',
    'ig_android_push_fcm',
    'ig_android_show_login_info_reminder_universe',
    'ig_android_email_fuzzy_matching_universe',
    'ig_android_one_tap_aymh_redesign_universe',
    'ig_android_direct_send_like_from_notification',
    'ig_android_suma_landing_page',
    'ig_android_direct_main_tab_universe',
    'ig_android_registration_confirmation_code_universe',
))

EXPERIMENTS = ','.join((
    'ig_android_ad_holdout_watchandmore_universe',
    'ig_android_camera_focus_v2',
    'ig_android_direct_inbox_search',
    'ig_android_feed_auto_share_to_facebook_dialog',
    'ig_android_insights_media_hashtag_insight_universe',
    'ig_android_live_use_rtc_upload_universe',
    'ig_android_profile_thumbnail_impression',
    'ig_android_reel_viewer_data_buffer_size',
    'ig_android_shopping_checkout_mvp_experiment',
    'ig_android_story_ads_instant_sub_impression_universe',
    'ig_android_stories_music_search_typeahead',
    'ig_android_video_ssim_fix_pts_universe',
    'ig_android_xposting_feed_to_stories_reshares_universe',
    'ig_direct_android_mentions_receiver',
    'ig_stories_engagement_holdout_2019_h2_universe',
))

# Cookie names
COOKIE_CSRF_TOKEN = 'csrftoken'
COOKIE_USER_ID = 'ds_user_id'
COOKIE_USERNAME = 'ds_user'
CSRF_TOKEN_MISSING = 'missing'

# Ephemeral id lifetimes (ms)
DEFAULT_SESSION_ID_LIFETIME_MS = 1_200_000
CHARGING_WINDOW_MS = 10_800_000

# Battery discharge period bounds (seconds per percent)
BATTERY_PERIOD_MIN = 200
BATTERY_PERIOD_MAX = 600

DEVICE_ID_PREFIX = 'android-'
DEVICE_ID_ALPHABET = 'abcdef0123456789'
DEVICE_ID_LENGTH = 16

# Largest integer a double holds exactly; larger ids stay strings
MAX_SAFE_INTEGER = 2 ** 53 - 1
MAX_SAFE_FLOAT_DIGITS = 15


# ============================================
#  DEVICE SAMPLES
# ============================================
#
# Format:
#   android_version/android_release; dpi; resolution;
#   manufacturer[/brand]; model; device; cpu

DEVICES = (
    '24/7.0; 380dpi; 1080x1920; OnePlus; ONEPLUS A3010;'
    ' OnePlus3T; qcom',
    '23/6.0.1; 640dpi; 1440x2392; LGE/lge; RS988; h1; h1',
    '24/7.0; 640dpi; 1440x2560; HUAWEI; LON-L29; HWLON; hi3660',
    '23/6.0.1; 640dpi; 1440x2560; ZTE; ZTE A2017U; ailsa_ii; qcom',
    '23/6.0.1; 640dpi; 1440x2560; samsung; SM-G935F; hero2lte;'
    ' samsungexynos8890',
    '23/6.0.1; 640dpi; 1440x2560; samsung; SM-G930F; herolte;'
    ' samsungexynos8890',
    '24/7.0; 480dpi; 1080x1920; samsung; SM-G950F; dreamlte;'
    ' samsungexynos8895',
    '26/8.0.0; 420dpi; 1080x2094; samsung; SM-G955F; dream2lte;'
    ' samsungexynos8895',
    '26/8.0.0; 480dpi; 1080x2076; samsung; SM-G960F; starlte;'
    ' samsungexynos9810',
    '27/8.1.0; 420dpi; 1080x2034; Xiaomi/xiaomi; Redmi Note 5;'
    ' whyred; qcom',
    '28/9; 440dpi; 1080x2030; Xiaomi/xiaomi; Mi A2; jasmine_sprout;'
    ' qcom',
    '28/9; 420dpi; 1080x2150; Google/google; Pixel 3; blueline;'
    ' blueline',
    '28/9; 560dpi; 1440x2792; Google/google; Pixel 3 XL; crosshatch;'
    ' crosshatch',
    '26/8.0.0; 480dpi; 1080x1920; Sony; G8341; poplar; qcom',
    '27/8.1.0; 480dpi; 1080x2034; HUAWEI/HONOR; COL-L29; HWCOL;'
    ' kirin970',
    '28/9; 480dpi; 1080x2220; motorola; moto g(7) plus; lake; qcom',
)

BUILDS = (
    'NMF26X', 'MMB29M', 'NRD90M', 'NPF26K', 'OPR6.170623.013',
    'OPM1.171019.019', 'OPR1.170623.032', 'PQ1A.181205.002',
    'PPR1.180610.009', 'PKQ1.180904.001', 'M1AJQ', 'NJH47F',
)

SUPPORTED_CAPABILITIES = (
    {'name': 'SUPPORTED_SDK_VERSIONS',
     'value': '13.0,14.0,15.0,16.0,17.0,18.0,19.0,20.0,21.0,22.0,'
              '23.0,24.0,25.0,26.0,27.0,28.0,29.0,30.0,31.0,32.0,'
              '33.0,34.0,35.0,36.0,37.0,38.0,39.0,40.0,41.0,42.0,'
              '43.0,44.0,45.0,46.0,47.0,48.0,49.0,50.0,51.0,52.0,'
              '53.0,54.0,55.0,56.0,57.0,58.0,59.0,60.0,61.0,62.0,'
              '63.0,64.0,65.0,66.0'},
    {'name': 'FACE_TRACKER_VERSION', 'value': 12},
    {'name': 'segmentation', 'value': 'segmentation_enabled'},
    {'name': 'COMPRESSION', 'value': 'ETC2_COMPRESSION'},
    {'name': 'world_tracker', 'value': 'world_tracker_enabled'},
    {'name': 'gyroscope', 'value': 'gyroscope_enabled'},
)

WEBVIEW_CHROME_VERSION = '70.0.3538.110'

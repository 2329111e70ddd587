"""
Global constants for the posereg pipeline

Includes:
- MediaPipe pose landmark definitions (33 points)
- Pose skeleton connections
- ORB defaults and feature file format constants
- Color palettes
"""

# ===== MediaPipe Pose Landmarks (33 points) =====
POSE_LANDMARK_NAMES = [
    'nose',              # 0
    'left_eye_inner',    # 1
    'left_eye',          # 2
    'left_eye_outer',    # 3
    'right_eye_inner',   # 4
    'right_eye',         # 5
    'right_eye_outer',   # 6
    'left_ear',          # 7
    'right_ear',         # 8
    'mouth_left',        # 9
    'mouth_right',       # 10
    'left_shoulder',     # 11
    'right_shoulder',    # 12
    'left_elbow',        # 13
    'right_elbow',       # 14
    'left_wrist',        # 15
    'right_wrist',       # 16
    'left_pinky',        # 17
    'right_pinky',       # 18
    'left_index',        # 19
    'right_index',       # 20
    'left_thumb',        # 21
    'right_thumb',       # 22
    'left_hip',          # 23
    'right_hip',         # 24
    'left_knee',         # 25
    'right_knee',        # 26
    'left_ankle',        # 27
    'right_ankle',       # 28
    'left_heel',         # 29
    'right_heel',        # 30
    'left_foot_index',   # 31
    'right_foot_index',  # 32
]

NUM_POSE_LANDMARKS = len(POSE_LANDMARK_NAMES)

LEFT_HIP_INDEX = 23
RIGHT_HIP_INDEX = 24

# Pose skeleton - connections between landmarks for visualization
POSE_CONNECTIONS = [
    # Face
    (0, 1), (1, 2), (2, 3), (3, 7), (0, 4), (4, 5), (5, 6), (6, 8), (9, 10),
    # Arms
    (11, 12), (11, 13), (13, 15), (15, 17), (15, 19), (15, 21), (17, 19),
    (12, 14), (14, 16), (16, 18), (16, 20), (16, 22), (18, 20),
    # Torso
    (11, 23), (12, 24), (23, 24),
    # Legs
    (23, 25), (24, 26), (25, 27), (26, 28), (27, 29), (28, 30),
    (29, 31), (30, 32), (27, 31), (28, 32),
]

# Landmark sides for skeleton coloring, as seen by the viewer (subject's right is image left)
LEFT_LANDMARK_INDICES = [4, 5, 6, 8, 10, 12, 14, 16, 18, 20, 22, 24, 26, 28, 30, 32]
RIGHT_LANDMARK_INDICES = [1, 2, 3, 7, 9, 11, 13, 15, 17, 19, 21, 23, 25, 27, 29, 31]

# ===== Color Palettes =====
# BGR format for OpenCV

LEFT_POINT_COLOR = (0, 196, 255)     # '#FFC400'
RIGHT_POINT_COLOR = (225, 236, 106)  # '#6AECE1'
CENTER_POINT_COLOR = (255, 255, 255)
CONNECTION_COLOR = (255, 255, 255)
CROP_BOX_COLOR = (0, 0, 0)
INLIER_COLOR = (0, 255, 0)
OUTLIER_COLOR = (0, 0, 255)
KEYPOINT_COLOR = (0, 255, 0)

# ===== ORB Defaults =====
ORB_DEFAULT_MAX_FEATURES = 1200
ORB_DEFAULT_SCALE_FACTOR = 1.2
ORB_DEFAULT_LEVELS = 8
ORB_DEFAULT_EDGE_THRESHOLD = 31
ORB_DEFAULT_PATCH_SIZE = 31
ORB_DEFAULT_FAST_THRESHOLD = 20
ORB_DESCRIPTOR_BYTES = 32

# ===== Matching / Registration Defaults =====
DEFAULT_RATIO = 0.75
DEFAULT_REPROJECTION_THRESHOLD = 3.0
MIN_HOMOGRAPHY_POINTS = 4
MIN_AFFINE_POINTS = 3
TRANSFORM_METHODS = ("homography", "affine")
POSE_BACKENDS = ("mediapipe",)

# ===== File Formats =====
FEATURES_FORMAT_VERSION = 1
FEATURES_TYPE = "ORB"
SESSION_FORMAT_VERSION = 1

# Frames synthesized per second of video when interpolating a session
DEFAULT_INTERPOLATION_FPS = 24

# CSV column names
CSV_SESSION_COLUMNS = [
    'frame', 'timestamp', 'crop_x', 'crop_y', 'crop_width', 'crop_height'
] + [f'{name}_{coord}' for name in POSE_LANDMARK_NAMES for coord in ['x', 'y', 'visibility']]

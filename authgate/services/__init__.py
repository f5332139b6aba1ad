# Business logic services - account operations and principal storage

# main.py
"""
Entry-point for the aim-assist system.

Parameter files
---------------
Every detector and predictor reads its JSON parameter file from
``RobotConfig.params_dir``. A missing or broken file is replaced by the
built-in defaults on start-up, so a fresh checkout runs out of the box.

Keys
----
``q`` quit, ``b`` buff tag, ``s`` snipe tag, ``n`` no tag, ``t`` restart
the engagement clock.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path

import cv2

from aim_assist.aim_assistant import AimAssistant
from aim_assist.camera import Camera
from aim_assist.common import RFID, Arm, Team
from aim_assist.config import CameraConfig, RobotConfig
from aim_assist.logger import setup_logging

logger = logging.getLogger("aim_assist.cli")

_WINDOW = "Aim Assist"
_KEY_RFID = {ord("b"): RFID.BUFF, ord("s"): RFID.SNIPE, ord("n"): RFID.UNKNOWN}


def _run(assistant: AimAssistant, camera: Camera, verbose: int) -> None:
    frames = 0
    fps_timer_start = time.time()
    disp_fps = 0.0

    while camera.grabbing:
        _, frame = camera.get_frame()
        if frame is None:
            logger.warning("No frame within %.1f s", camera.config.frame_timeout_s)
            continue

        targets = assistant.aim(frame)
        out = frame.copy()
        assistant.visualize_result(out, verbose)

        frames += 1
        now = time.time()
        if now - fps_timer_start >= 1.0:
            disp_fps = frames / (now - fps_timer_start)
            frames = 0
            fps_timer_start = now
        cv2.putText(out, f"FPS:{disp_fps:.1f} {assistant.method.name}",
                    (10, out.shape[0] - 10), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 255, 0), 2)
        if targets and not targets[0].is_empty:
            logger.debug("Aim at %.1f, %.1f", *targets[0].center)
        cv2.imshow(_WINDOW, out)

        key = cv2.waitKey(1) & 0xFF
        if key == ord("q"):
            break
        if key in _KEY_RFID:
            assistant.set_rfid(_KEY_RFID[key])
        elif key == ord("t"):
            assistant.set_time(0.0)


def main() -> None:
    # -------------------- Config blobs --------------------
    cam_cfg = CameraConfig()
    robot_cfg = RobotConfig(arm=Arm.INFANTRY, enemy_team=Team.RED)

    setup_logging(logging.INFO, robot_cfg.log_path)
    params = Path(robot_cfg.params_dir)

    # ------------------------ Banner ----------------------
    print("Initializing Aim-Assist System…")
    print(f"Camera: src={cam_cfg.source}, {cam_cfg.width}x{cam_cfg.height}@{cam_cfg.fps_request} FPS")
    print(f"Robot: arm={robot_cfg.arm.name}, enemy={robot_cfg.enemy_team.name}, params={params}")
    print("Keys: q quit | b buff | s snipe | n no tag | t restart clock\n")

    # ------------------------ Run -------------------------
    assistant = AimAssistant(robot_cfg.arm, robot_cfg.enemy_team)
    assistant.load_params(
        params / "armor.json",
        params / "buff.json",
        params / "snipe.json",
        params / "armor_predictor.json",
        params / "buff_predictor.json",
    )
    assistant.set_rfid(RFID.UNKNOWN)
    assistant.set_time(0.0)

    camera = Camera(cam_cfg)
    if not camera.start():
        assistant.close()
        return

    cv2.namedWindow(_WINDOW, cv2.WINDOW_NORMAL)
    try:
        _run(assistant, camera, robot_cfg.verbose)
    except KeyboardInterrupt:
        print("\n[Main] Stopped by user.")
    finally:
        camera.release()
        assistant.close()
        cv2.destroyAllWindows()
    print("Main program finished.")


if __name__ == "__main__":
    main()

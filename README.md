# neonchase

The simulation and data core of a small 3D chase game: two bouncing spheres to
dodge, a target to catch, and a camera you steer around a walled box. Nothing
here needs a window or a graphics context, so game logic, asset loading and
audio mixing can be driven and tested from plain Python.

## Install

```
pip install .
pip install ".[test]"   # adds pytest
```

Requires Python 3.10 or later, numpy and pillow.

## Modules

- `neonchase.geometry`: numpy helpers. Quaternions are arrays in
  `(w, x, y, z)` order; affine transforms are 3x4 arrays. Provides
  `angle_axis`, `quat_multiply`, `quat_normalize`, `quat_inverse`,
  `quat_to_mat3`, `quat_rotate`, `pad_to_mat4` and `infinite_perspective`.
- `neonchase.chunks`: the tagged binary container used by scene files. A chunk
  is a four-byte tag, a four-byte little-endian size and the data.
  `read_chunk(stream, magic, element_format)` returns the raw bytes when
  `element_format` is `None`, otherwise a list of tuples unpacked with that
  `struct` format. `write_chunk(magic, records, stream, element_format)` writes
  one chunk. A missing header, wrong tag, size not divisible by the record size
  or short data raises `ChunkError`.
- `neonchase.scene`: a hierarchy of `Transform`s (position, rotation, scale,
  optional parent) with `make_local_to_parent`, `make_parent_to_local`,
  `make_local_to_world` and `make_world_to_local`. A `Scene` holds transforms
  plus `Drawable`s (each with a `Pipeline`), `Camera`s (`make_projection`) and
  `Light`s (`LightType`). `Scene.from_file(filename, on_drawable)` and
  `Scene.load` read a `.scene` file (chunks `str0`, `xfh0`, `msh0`, `cam0`,
  `lmp0`); `on_drawable(scene, transform, mesh_name)` is called for every mesh
  reference. Non-perspective cameras and unknown lamp types are skipped with a
  message. Bad indices or out-of-order transforms raise `SceneFormatError`.
  `Scene.load_extra` is a hook for subclasses to read further chunks.
  `Scene.set(other)` deep-copies another scene and returns the old-to-new
  transform map; `Scene.copy()` returns a duplicate; `Scene.find_transform(name)`
  raises `KeyError` if no transform has that name.
- `neonchase.wav`: `load_wav(filename)` reads 8/16/24/32-bit PCM or 32/64-bit
  float WAV files and returns mono 48 kHz `float32` data, downmixing and
  resampling (linear interpolation) when needed. Unreadable files raise
  `ValueError`.
- `neonchase.sound`: a software mixer. `Sample` holds mono 48 kHz data
  (`Sample.from_file` accepts `.wav` files). A `Mixer` starts samples with
  `play`, `loop` (2D, panned from -1 left to 1 right) or `play_3d`, `loop_3d`
  (positioned relative to `Mixer.listener`, a `Listener`). Each returns a
  `PlayingSample` whose `set_volume`, `set_pan`, `set_position`,
  `set_half_volume_radius` and `stop` glide over a `Ramp`. `Mixer.mix()` returns
  the next block of `MIX_SAMPLES` (1024) stereo frames as a `(1024, 2)` array and
  drops samples that have finished or faded out after `stop`.
  `Mixer.stop_all_samples()` and `Mixer.set_volume()` act on everything.
- `neonchase.png_io`: `load_png(filename, origin)` returns
  `((width, height), pixels)` with `pixels` shaped `(height, width, 4)` RGBA;
  `save_png(filename, size, data, origin)` writes RGBA pixels. `OriginLocation`
  says whether row zero is the top (`UPPER_LEFT`) or bottom (`LOWER_LEFT`).
- `neonchase.play_mode`: the game. `PlayMode(scene, mixer, bgm_sample,
  win_sample, lose_sample)` needs a scene with transforms named `Sphere`,
  `Sphere1`, `Target`, `LeftAnkle` and `RightAnkle` and exactly one camera
  (otherwise `ValueError`); the mixer and samples are optional.
  `handle_event(event, window_size)` takes `KeyDown`/`KeyUp` (`Key.W`, `Key.A`,
  `Key.S`, `Key.D`, `Key.ESCAPE`), `MouseButtonDown` and `MouseMotion` events and
  returns whether it used them. `update(elapsed)` advances the simulation;
  `message()` gives "You win!", "You lose!" or the instructions.
- `neonchase.viewer_modes`: inspection modes sharing an `OrbitCamera`
  (left-drag to tumble, shift-drag to pan, `MouseWheel` to dolly).
  `ShowMeshesMode(meshes, vao, pipeline)` steps through a mapping of names to
  `MeshInfo` in name order with `Key.LEFT`/`Key.RIGHT`, stopping at either end.
  `ShowSceneMode(scene)` orbits around a scene. Both place their camera with
  `update_camera(drawable_size)`.
- `neonchase.data_path`: `data_path(suffix)` joins `suffix` onto the directory
  of the running program (the current directory if that is unknown).

## Example

```python
from neonchase.play_mode import Key, KeyDown, PlayMode
from neonchase.scene import Scene
from neonchase.sound import Mixer, Sample

scene = Scene.from_file("boxsphere.scene", None)
mixer = Mixer()
game = PlayMode(scene, mixer, win_sample=Sample.from_file("win.wav"))

game.handle_event(KeyDown(Key.W), (1280, 720))
game.update(1.0 / 60.0)
print(game.message())

block = mixer.mix()  # (1024, 2) array of stereo samples
```

## Rules of the game

Move with W, A, S and D and look around with the mouse (click to capture it,
Escape to release). Touch the target to win; come within reach of either
sphere and you lose. The camera is held inside the box from -9 to 9 on x and y
and from 1 to 19 on z; the spheres and the target bounce off the same walls.

## What this package does not do

- It opens no window and draws nothing: there is no renderer, no shader code
  and no text overlay. `Pipeline` and `Drawable` only carry the numbers a
  renderer would use.
- It has no main loop and no command to run; you feed events and elapsed time
  to a mode yourself.
- It does not send audio to a sound device; `Mixer.mix()` only returns the
  samples.
- It reads only WAV audio, not Opus or other compressed formats.
- It does not load mesh buffers (`.pnct`); `ShowMeshesMode` takes the mesh
  table as `MeshInfo` values you supply.
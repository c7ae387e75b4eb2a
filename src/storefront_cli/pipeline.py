"""Pipeline helpers for frame extraction, storefront generation and chat."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

from frame_extraction import ExtractionRequest, Frame, TimestampPolicy, VideoSource, extract_frames
from product_generation import GeminiGateway, GeneratedProduct, ShopAssistant
from product_generation.assistant import GENERATION_TIP
from product_generation.prompt import CURRENCY
from storefront_workflow import (
    PRICE_RANGES,
    Cart,
    Extracting,
    Failed,
    FrameSelection,
    GeneratingDetails,
    GeneratingImages,
    Idle,
    Ready,
    SortOption,
    StorefrontWorkflow,
    WorkflowState,
    filter_products,
    unique_materials,
)


def format_price(price: float) -> str:
    return f"{CURRENCY} {price:,.2f}"


def render_state(state: WorkflowState) -> None:
    """Print a one-line status for each workflow state."""

    if isinstance(state, Extracting):
        print(f"[extract] extracting frames from {state.source_name}...")
    elif isinstance(state, FrameSelection):
        print(f"[extract] {len(state.frames)} frame(s) ready")
    elif isinstance(state, GeneratingDetails):
        print(f"[details] generating listings from frame {state.frame.index + 1}...")
    elif isinstance(state, GeneratingImages):
        print(f"[images] generating photos for {len(state.products)} product(s)...")
    elif isinstance(state, Ready):
        if state.editing:
            print(f"[edit] editing image of {state.editing}...")
        elif state.edit_error:
            print(f"[edit] failed: {state.edit_error.message}")
        else:
            print(f"[store] storefront ready with {len(state.products)} product(s)")
    elif isinstance(state, Failed):
        print(f"[error] {state.message}")


def write_frames(frames: Iterable[Frame], out_dir: Path) -> List[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for frame in frames:
        ts_str = f"{frame.timestamp:.3f}"
        path = out_dir / f"frame_{frame.index:03d}_{ts_str.replace('.', 'p')}.jpg"
        path.write_bytes(frame.image.data)
        written.append(path)
    return written


def extract_frames_to_dir(
    video_path: Path,
    out_dir: Path,
    *,
    count: int = 3,
    policy: str = TimestampPolicy.EVEN.value,
) -> List[Path]:
    """Extract frames from a local video and save them as JPEG files."""

    source = VideoSource.from_path(video_path)
    request = ExtractionRequest(frame_count=count, policy=TimestampPolicy(policy))
    frames = asyncio.run(extract_frames(source, request))
    return write_frames(frames, out_dir)


def write_manifest(products: Sequence[GeneratedProduct], manifest_path: Path, images_dir: Path) -> Dict[str, Any]:
    images_dir.mkdir(parents=True, exist_ok=True)
    manifest_path.parent.mkdir(parents=True, exist_ok=True)
    entries = []
    for product in products:
        image_path = images_dir / f"{product.id}{product.image.extension}"
        image_path.write_bytes(product.image.data)
        entries.append(
            {
                "id": product.id,
                "title": product.title,
                "description": product.description,
                "price": product.price,
                "material": product.material,
                "dimensions": product.dimensions,
                "features": list(product.features),
                "price_comparisons": [{"retailer": c.retailer, "price": c.price} for c in product.price_comparisons],
                "image_path": str(image_path),
            }
        )
    data = {"products": entries}
    manifest_path.write_text(json.dumps(data, indent=2, ensure_ascii=False))
    return data


async def _run_end_to_end(
    workflow: StorefrontWorkflow,
    source: VideoSource,
    frame_index: int,
) -> WorkflowState:
    state = await workflow.select_video(source)
    if not isinstance(state, FrameSelection):
        return state
    if not 0 <= frame_index < len(state.frames):
        raise ValueError(f"--frame must be between 0 and {len(state.frames) - 1}")
    return await workflow.select_frame(state.frames[frame_index])


def run_end_to_end(
    *,
    video_path: Path,
    manifest_path: Path,
    images_dir: Path,
    frame_index: int = 0,
    frame_count: int = 3,
    synthesize_images: bool = True,
    gateway: GeminiGateway | None = None,
) -> Dict[str, Any]:
    """Run extract -> describe -> (photograph) and write a product manifest."""

    gateway = gateway or GeminiGateway.from_env()
    workflow = StorefrontWorkflow(
        gateway,
        request=ExtractionRequest(frame_count=frame_count),
        synthesize_images=synthesize_images,
    )
    workflow.subscribe(render_state)
    state = asyncio.run(_run_end_to_end(workflow, VideoSource.from_path(video_path), frame_index))
    if isinstance(state, Failed):
        raise RuntimeError(state.message)
    if not isinstance(state, Ready):
        raise RuntimeError(f"Workflow stopped in an unexpected state: {type(state).__name__}")
    data = write_manifest(state.products, manifest_path, images_dir)
    print(f"[store] manifest saved to {manifest_path}")
    return data


def print_products(products: Sequence[GeneratedProduct]) -> None:
    for i, product in enumerate(products, start=1):
        extras = [x for x in (product.material, product.dimensions) if x]
        suffix = f" ({', '.join(extras)})" if extras else ""
        print(f"  {i}. {product.title} - {format_price(product.price)}{suffix}")


async def _ask(prompt: str) -> str:
    return (await asyncio.to_thread(input, prompt)).strip()


async def _talk(assistant: ShopAssistant) -> None:
    print("[assistant] Ask me anything about selling your products (blank line to go back).")
    while True:
        text = await _ask("you> ")
        if not text:
            return
        reply = await assistant.send(text)
        print(f"[assistant] {reply}")


async def _store_loop(
    workflow: StorefrontWorkflow,
    cart: Cart,
    images_dir: Path,
    assistant: ShopAssistant | None = None,
) -> bool:
    """Browse the ready storefront. Returns True to start over, False to quit."""

    search, price_range, material, sort = "", None, None, SortOption.TITLE_ASC
    menu = "\n[a]dd to cart, [e]dit image, [f]ilter, [c]art/checkout, [s]ave, "
    if assistant is not None:
        menu += "[t]alk to assistant, "
    menu += "[n]ew video, [q]uit: "
    while True:
        state = workflow.state
        if not isinstance(state, Ready):
            raise RuntimeError(f"The store needs a ready workflow, not {type(state).__name__}")
        shown = filter_products(state.products, search=search, price_range=price_range, material=material, sort=sort)
        print(f"\n=== Your Store ({len(shown)} product(s), cart: {cart.item_count}) ===")
        print_products(shown)
        choice = (await _ask(menu)).lower()

        if choice in ("a", "e"):
            raw = await _ask("Product number: ")
            if not raw.isdigit() or not 1 <= int(raw) <= len(shown):
                print("Invalid product number.")
                continue
            product = shown[int(raw) - 1]
            if choice == "a":
                cart.add(product)
                print(f"Added {product.title} to cart.")
            else:
                instruction = await _ask("Describe the edit: ")
                edited = await workflow.request_image_edit(product.id, instruction)
                if isinstance(edited, Ready):
                    cart.refresh(edited.products)
        elif choice == "f":
            search = await _ask("Search (blank for none): ")
            for i, r in enumerate(PRICE_RANGES, start=1):
                print(f"  {i}. {r.label}")
            raw = await _ask("Price range number (blank for any): ")
            price_range = PRICE_RANGES[int(raw) - 1] if raw.isdigit() and 1 <= int(raw) <= len(PRICE_RANGES) else None
            materials = unique_materials(state.products)
            if materials:
                print("  Materials: " + ", ".join(materials))
                material = await _ask("Material (blank for any): ") or None
            raw = await _ask("Sort [price-asc|price-desc|title-asc|title-desc]: ")
            sort = SortOption(raw) if raw in {o.value for o in SortOption} else SortOption.TITLE_ASC
        elif choice == "c":
            if not cart.items:
                print("Your cart is empty. Add some products to see them here!")
                continue
            for item in cart.items:
                print(f"  {item.quantity} x {item.product.title} = {format_price(item.line_total)}")
            print(f"  Subtotal: {format_price(cart.subtotal)}")
            if (await _ask("Proceed to (mock) checkout? [y/N]: ")).lower() == "y":
                summary = cart.checkout()
                print(f"Order placed for {summary['item_count']} item(s). Thank you!")
        elif choice == "s":
            write_manifest(state.products, images_dir / "products.json", images_dir)
            print(f"Saved to {images_dir}")
        elif choice == "t" and assistant is not None:
            await _talk(assistant)
        elif choice == "n":
            return True
        elif choice == "q":
            return False


async def _interactive(gateway: GeminiGateway, images_dir: Path) -> None:
    assistant = ShopAssistant(gateway)
    workflow = StorefrontWorkflow(gateway, on_generation_start=lambda: assistant.push_proactive(GENERATION_TIP))
    workflow.subscribe(render_state)
    cart = Cart()

    while True:
        state = workflow.state
        if isinstance(state, Idle):
            video_input = await _ask("Enter video file path (blank to exit): ")
            if not video_input:
                return
            video_path = Path(video_input).expanduser().resolve()
            if not video_path.exists():
                print(f"Error: Video file not found: {video_path}")
                continue
            try:
                source = VideoSource.from_path(video_path)
            except ValueError as exc:
                print(f"Error: {exc}")
                continue
            await workflow.select_video(source)
        elif isinstance(state, FrameSelection):
            for frame in state.frames:
                print(f"  {frame.index + 1}. frame at {frame.timestamp:.2f}s ({frame.width}x{frame.height})")
            paths = write_frames(state.frames, images_dir / "frames")
            print(f"Frames saved under {paths[0].parent}")
            raw = await _ask("Choose a frame number (blank to cancel): ")
            chosen = [f for f in state.frames if raw.isdigit() and f.index + 1 == int(raw)]
            if not chosen:
                workflow.cancel_selection()
                continue
            await workflow.select_frame(chosen[0])
            if assistant.messages[-1].text == GENERATION_TIP:
                print(f"\n[assistant] {GENERATION_TIP}\n")
        elif isinstance(state, Failed):
            if "try_different_frame" in state.recovery_actions:
                raw = (await _ask("[t]ry a different frame or [s]tart over? ")).lower()
                if raw == "t":
                    await workflow.retry_from_failure()
                    continue
            workflow.reset_workflow()
        elif isinstance(state, Ready):
            if await _store_loop(workflow, cart, images_dir, assistant):
                workflow.reset_workflow()
            else:
                return
        else:
            # A busy state only shows up here if a stage was interrupted.
            workflow.reset_workflow()


def run(images_dir: Path = Path("artifacts/storefront")) -> None:
    """Interactive pipeline: prompts for a video, a frame, then browses the store."""

    print("\n=== Video Storefront ===\n")
    asyncio.run(_interactive(GeminiGateway.from_env(), images_dir))
    print("\n=== Done! ===\n")


async def _chat(gateway: GeminiGateway, location: str | None) -> None:
    assistant = ShopAssistant(gateway, location=location)
    print(f"[assistant] {assistant.messages[0].text}")
    while True:
        text = await _ask("you> ")
        if not text or text.lower() in ("exit", "quit"):
            return
        reply = await assistant.send(text)
        print(f"[assistant] {reply}")


def chat(*, location: str | None = None, gateway: GeminiGateway | None = None) -> None:
    asyncio.run(_chat(gateway or GeminiGateway.from_env(), location))


if __name__ == "__main__":
    run()

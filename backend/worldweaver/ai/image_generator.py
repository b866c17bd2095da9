from worldweaver.ai.artifacts import GeneratedImage, ImageRequest
from worldweaver.ai.base import BaseGenerator

# gpt-image-1 only produces square output at this size
MAP_IMAGE_SIZE = "1024x1024"


class ImageGenerator(BaseGenerator[ImageRequest, GeneratedImage]):
    """Generates one image for an already-built prompt and returns it as base64."""

    operation = "image"

    async def run(self, input_data: ImageRequest) -> GeneratedImage:
        b64_data = await self.llm.generate_image(
            input_data.prompt, size=input_data.size, quality=input_data.quality
        )
        return GeneratedImage(prompt=input_data.prompt, b64_data=b64_data, quality=input_data.quality)
